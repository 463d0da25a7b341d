"""GLSL sources for the GPU pipeline.

Every built-in program reads exact texels with ``texelFetch`` so the GPU
results follow the CPU reference in :mod:`framestag.filters`. Textures are
stored bottom-up (GL convention): image row ``y`` lives in texture row
``height - 1 - y``. Offsets that are asymmetric in the image's vertical
direction are therefore negated on the GPU.

Custom transforms are fragment shaders that read ``u_image`` (optionally
``u_resolution`` and ``u_time``) at ``v_texCoord`` and write ``f_color``.
"""

from framestag.config import settings

MAX_KERNEL_SIZE = settings.MAX_KERNEL_SIZE
MAX_MORPH_RADIUS = settings.MAX_MORPH_RADIUS

# Full screen quad, two triangles
QUAD_VERTICES = (
    -1.0, -1.0, 1.0, -1.0, -1.0, 1.0,
    -1.0, 1.0, 1.0, -1.0, 1.0, 1.0,
)

VERTEX_SHADER = """
#version 330
in vec2 in_position;
out vec2 v_texCoord;
void main() {
    gl_Position = vec4(in_position, 0.0, 1.0);
    v_texCoord = (in_position + 1.0) / 2.0;
}
"""

PASSTHROUGH_FRAGMENT = """
#version 330
uniform sampler2D u_image;
out vec4 f_color;
void main() {
    f_color = texelFetch(u_image, ivec2(gl_FragCoord.xy), 0);
}
"""

KERNEL_FRAGMENT = """
#version 330
#define MAX_KERNEL_SIZE %(max_size)d
uniform sampler2D u_image;
uniform vec2 u_resolution;
uniform float u_kernel[MAX_KERNEL_SIZE * MAX_KERNEL_SIZE];
uniform int u_kernelSize;
uniform float u_kernelFactor;
uniform float u_kernelBias;
out vec4 f_color;

void main() {
    ivec2 size = ivec2(u_resolution);
    ivec2 p = ivec2(gl_FragCoord.xy);
    int halfSide = u_kernelSize / 2;
    vec3 sum = vec3(0.0);

    for (int cy = 0; cy < MAX_KERNEL_SIZE; cy++) {
        if (cy >= u_kernelSize) break;
        for (int cx = 0; cx < MAX_KERNEL_SIZE; cx++) {
            if (cx >= u_kernelSize) break;
            // image rows grow downwards, texture rows upwards
            ivec2 tap = ivec2(p.x + cx - halfSide, p.y - (cy - halfSide));
            if (tap.x < 0 || tap.y < 0 || tap.x >= size.x || tap.y >= size.y) continue;
            vec3 texel = floor(texelFetch(u_image, tap, 0).rgb * 255.0 + 0.5);
            sum += texel * u_kernel[cy * u_kernelSize + cx];
        }
    }

    vec3 result = clamp(sum * u_kernelFactor + u_kernelBias, 0.0, 255.0);
    f_color = vec4(result / 255.0, 1.0);
}
""" % {'max_size': MAX_KERNEL_SIZE}

MORPHOLOGY_FRAGMENT = """
#version 330
#define MAX_RADIUS %(max_radius)d
uniform sampler2D u_image;
uniform vec2 u_resolution;
uniform int u_morphType; // 0 = erosion (min), 1 = dilation (max)
uniform int u_radius;
out vec4 f_color;

void main() {
    ivec2 size = ivec2(u_resolution);
    ivec2 p = ivec2(gl_FragCoord.xy);
    vec3 val = u_morphType == 0 ? vec3(1.0) : vec3(0.0);

    for (int dy = -MAX_RADIUS; dy <= MAX_RADIUS; dy++) {
        for (int dx = -MAX_RADIUS; dx <= MAX_RADIUS; dx++) {
            if (abs(dx) > u_radius || abs(dy) > u_radius) continue;
            ivec2 tap = p + ivec2(dx, dy);
            if (tap.x < 0 || tap.y < 0 || tap.x >= size.x || tap.y >= size.y) continue;
            vec3 neighbor = texelFetch(u_image, tap, 0).rgb;
            val = u_morphType == 0 ? min(val, neighbor) : max(val, neighbor);
        }
    }
    f_color = vec4(val, 1.0);
}
""" % {'max_radius': MAX_MORPH_RADIUS}

# Luma in integer thousandths, so floor(luma) is exact
BIT_PLANE_FRAGMENT = """
#version 330
uniform sampler2D u_image;
uniform int u_bitPlane; // 1 to 8
out vec4 f_color;

void main() {
    ivec3 c = ivec3(floor(texelFetch(u_image, ivec2(gl_FragCoord.xy), 0).rgb * 255.0 + 0.5));
    int quantized = (299 * c.r + 587 * c.g + 114 * c.b) / 1000;
    if (((quantized >> (u_bitPlane - 1)) & 1) == 1) {
        f_color = vec4(1.0, 1.0, 1.0, 1.0);
    } else {
        f_color = vec4(0.0, 0.0, 0.0, 1.0);
    }
}
"""

COLOR_SPACE_FRAGMENT = """
#version 330
uniform sampler2D u_image;
uniform int u_channel; // 0 = RGB, 1 = GRAYSCALE, 2 = HUE, 3 = SAT, 4 = VAL
out vec4 f_color;

void main() {
    vec4 color = texelFetch(u_image, ivec2(gl_FragCoord.xy), 0);
    if (u_channel == 0) {
        f_color = color;
        return;
    }
    vec3 rgb = color.rgb;
    float outVal;
    if (u_channel == 1) {
        outVal = dot(rgb, vec3(0.299, 0.587, 0.114));
    } else {
        float vmax = max(rgb.r, max(rgb.g, rgb.b));
        float vmin = min(rgb.r, min(rgb.g, rgb.b));
        float d = vmax - vmin;
        float h = 0.0;
        if (d > 0.0) {
            if (vmax == rgb.r) {
                h = (rgb.g - rgb.b) / d + (rgb.g < rgb.b ? 6.0 : 0.0);
            } else if (vmax == rgb.g) {
                h = (rgb.b - rgb.r) / d + 2.0;
            } else {
                h = (rgb.r - rgb.g) / d + 4.0;
            }
            h /= 6.0;
        }
        float s = vmax == 0.0 ? 0.0 : d / vmax;
        outVal = u_channel == 2 ? h : (u_channel == 3 ? s : vmax);
    }
    f_color = vec4(vec3(outVal), 1.0);
}
"""

MOTION_HEATMAP_FRAGMENT = """
#version 330
uniform sampler2D u_image;         // current image in the pipeline
uniform sampler2D u_prevRawFrame;  // raw input frame of the previous tick
uniform float u_motionThreshold;
out vec4 f_color;

const vec4 HIGHLIGHT = vec4(0.2, 1.0, 0.4, 0.7);

void main() {
    ivec2 p = ivec2(gl_FragCoord.xy);
    vec4 current = texelFetch(u_image, p, 0);
    vec4 previous = texelFetch(u_prevRawFrame, p, 0);

    float currentGray = dot(current.rgb, vec3(0.299, 0.587, 0.114));
    float prevGray = dot(previous.rgb, vec3(0.299, 0.587, 0.114));

    if (abs(currentGray - prevGray) > u_motionThreshold) {
        f_color = mix(current, HIGHLIGHT, 0.5);
    } else {
        f_color = current;
    }
}
"""

DEFAULT_CUSTOM_SOURCE = """#version 330
uniform sampler2D u_image;
uniform vec2 u_resolution;
uniform float u_time;
in vec2 v_texCoord;
out vec4 f_color;

void main() {
    vec4 color = texture(u_image, v_texCoord);

    // Chromatic aberration
    float shift = sin(u_time * 2.0) * 0.005;
    float r = texture(u_image, v_texCoord + vec2(shift, 0.0)).r;
    float b = texture(u_image, v_texCoord - vec2(shift, 0.0)).b;

    f_color = vec4(r, color.g, b, 1.0);
}
"""
