# FrameStag Engine - OpenGL
"""
Multi-pass pipeline renderer on OpenGL 3.3 through moderngl.

Each stage is one full-screen quad draw into the ping-pong target that is
not currently being read. Textures hold the frame bottom-up, matching the
framebuffer readback origin, so upload and readback both flip rows.

Usage:
    engine = GLPipelineEngine()                # offscreen standalone context
    engine = GLPipelineEngine(ctx=window_ctx)  # share an existing context
"""

from __future__ import annotations

from typing import Any, NamedTuple
import logging

import moderngl
import numpy as np

from framestag.config import settings
from framestag.errors import ProgramCompileError, ReadbackError, ResourceInitError
from framestag.filters.color_space import ColorChannel
from framestag.filters.morphology import MorphologyOp
from framestag.frame import Frame
from framestag.shaders import (
    BIT_PLANE_FRAGMENT,
    COLOR_SPACE_FRAGMENT,
    KERNEL_FRAGMENT,
    MAX_KERNEL_SIZE,
    MORPHOLOGY_FRAGMENT,
    MOTION_HEATMAP_FRAGMENT,
    PASSTHROUGH_FRAGMENT,
    QUAD_VERTICES,
    VERTEX_SHADER,
)
from .base import PipelineEngine
from .program_cache import LookupResult, ProgramCache

logger = logging.getLogger(__name__)

COLOR_CHANNEL_INDEX = {
    ColorChannel.RGB: 0,
    ColorChannel.GRAYSCALE: 1,
    ColorChannel.HSV_HUE: 2,
    ColorChannel.HSV_SAT: 3,
    ColorChannel.HSV_VAL: 4,
}


class GLProgram(NamedTuple):
    """Linked program plus the quad vertex array bound to it."""
    program: moderngl.Program
    vao: moderngl.VertexArray

    def release(self) -> None:
        self.vao.release()
        self.program.release()


class RenderTarget(NamedTuple):
    texture: moderngl.Texture
    fbo: moderngl.Framebuffer

    def release(self) -> None:
        self.fbo.release()
        self.texture.release()


class GLPipelineEngine(PipelineEngine):
    """Pipeline engine rendering with moderngl.

    :param ctx: Existing context to render with. If omitted an offscreen
        standalone context is created and owned by the engine.
    :param require: Minimum OpenGL version code for the standalone context
    :param max_programs: Program cache bound, defaults to the settings
    :raises ResourceInitError: If no context can be created or the identity
        program fails to compile
    """

    backend = 'gl'

    def __init__(self, ctx: moderngl.Context | None = None, require: int | None = None,
                 max_programs: int | None = None):
        super().__init__()
        if ctx is None:
            try:
                ctx = moderngl.create_standalone_context(require=require or settings.GL_REQUIRE)
            except Exception as e:
                raise ResourceInitError(f"Could not create OpenGL context: {e}") from e
            self._owns_ctx = True
        else:
            self._owns_ctx = False
        self.ctx = ctx

        self._source: RenderTarget | None = None
        self._previous: RenderTarget | None = None
        self._ping: list[RenderTarget] = []
        self._current: RenderTarget | None = None
        self._target = 0

        try:
            self._vbo = ctx.buffer(np.array(QUAD_VERTICES, dtype='f4').tobytes())
            self._programs = ProgramCache(
                compiler=self._compile,
                identity_source=PASSTHROUGH_FRAGMENT,
                max_entries=max_programs,
                on_evict=GLProgram.release,
            )
        except Exception:
            self._release_context()
            raise
        logger.info(f"OpenGL engine ready: {ctx.info.get('GL_RENDERER', 'unknown renderer')}")

    @property
    def programs(self) -> ProgramCache:
        return self._programs

    def _compile(self, source: str) -> GLProgram:
        try:
            program = self.ctx.program(vertex_shader=VERTEX_SHADER, fragment_shader=source)
        except moderngl.Error as e:
            raise ProgramCompileError(str(e), source=source) from e
        vao = self.ctx.vertex_array(program, [(self._vbo, '2f', 'in_position')])
        return GLProgram(program, vao)

    # ------------------------------------------------------------------
    # Buffer primitives
    # ------------------------------------------------------------------

    def _create_target(self, width: int, height: int) -> RenderTarget:
        texture = self.ctx.texture((width, height), 4)
        texture.filter = (moderngl.NEAREST, moderngl.NEAREST)
        texture.repeat_x = False
        texture.repeat_y = False
        fbo = self.ctx.framebuffer(color_attachments=[texture])
        return RenderTarget(texture, fbo)

    def _release_targets(self) -> None:
        for target in (self._source, self._previous, *self._ping):
            if target is not None:
                target.release()
        self._source = None
        self._previous = None
        self._ping = []
        self._current = None

    def _allocate(self, width: int, height: int) -> None:
        self._release_targets()
        try:
            self._source = self._create_target(width, height)
            self._previous = self._create_target(width, height)
            self._ping = [self._create_target(width, height), self._create_target(width, height)]
        except moderngl.Error as e:
            self._release_targets()
            raise ResourceInitError(f"Could not allocate {width}x{height} render targets: {e}") from e
        self._begin_tick()

    def _upload(self, frame: Frame) -> None:
        self._source.texture.write(np.ascontiguousarray(frame.pixels[::-1]).tobytes())
        self._begin_tick()

    def _begin_tick(self) -> None:
        self._current = self._source
        self._target = 0

    def _store_previous(self) -> None:
        self.ctx.copy_framebuffer(dst=self._previous.fbo, src=self._source.fbo)

    def _draw(self, program: GLProgram, uniforms: dict[str, Any] | None = None,
              textures: dict[int, moderngl.Texture] | None = None) -> None:
        destination = self._ping[self._target]
        self._current.texture.use(location=0)
        for location, texture in (textures or {}).items():
            texture.use(location=location)

        values = {
            'u_image': 0,
            'u_resolution': (float(self.width), float(self.height)),
            'u_time': self.elapsed,
        }
        values.update(uniforms or {})
        for name, value in values.items():
            self._set_uniform(program.program, name, value)

        destination.fbo.use()
        self.ctx.disable(moderngl.BLEND)
        program.vao.render(moderngl.TRIANGLES)

        self._current = destination
        self._target ^= 1

    @staticmethod
    def _set_uniform(program: moderngl.Program, name: str, value: Any) -> None:
        # Uniforms a program does not use are optimized away by the driver
        member = program.get(name, None)
        if member is None:
            return
        if isinstance(value, np.ndarray):
            member.write(value.tobytes())
        else:
            member.value = value

    def _draw_builtin(self, source: str, uniforms: dict[str, Any],
                      textures: dict[int, moderngl.Texture] | None = None) -> LookupResult:
        # A built-in that fails to compile draws identity and is reported like a custom program
        program, result = self._programs.resolve(source)
        self._draw(program, uniforms, textures)
        return result

    def _read_output(self) -> np.ndarray:
        try:
            data = self._current.fbo.read(components=4, alignment=1)
        except moderngl.Error as e:
            raise ReadbackError(f"Framebuffer read failed: {e}") from e
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(self.height, self.width, 4)
        return pixels[::-1].copy()

    def _release_resources(self) -> None:
        self._release_targets()
        self._programs.release()
        self._vbo.release()
        self._release_context()

    def _release_context(self) -> None:
        if self._owns_ctx:
            self.ctx.release()

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    def _apply_convolution(self, stage) -> LookupResult:
        kernel = stage.kernel
        weights = np.zeros(MAX_KERNEL_SIZE * MAX_KERNEL_SIZE, dtype='f4')
        weights[:len(kernel.matrix)] = kernel.matrix
        return self._draw_builtin(KERNEL_FRAGMENT, {
            'u_kernel': weights,
            'u_kernelSize': kernel.side,
            'u_kernelFactor': float(kernel.factor),
            'u_kernelBias': float(kernel.bias),
        })

    def _apply_morphology(self, stage) -> LookupResult:
        return self._draw_builtin(MORPHOLOGY_FRAGMENT, {
            'u_morphType': 0 if stage.operation is MorphologyOp.EROSION else 1,
            'u_radius': stage.radius,
        })

    def _apply_bit_plane(self, stage) -> LookupResult:
        return self._draw_builtin(BIT_PLANE_FRAGMENT, {'u_bitPlane': stage.bit})

    def _apply_color_space(self, stage) -> LookupResult:
        return self._draw_builtin(COLOR_SPACE_FRAGMENT, {'u_channel': COLOR_CHANNEL_INDEX[stage.channel]})

    def _apply_motion(self, stage) -> LookupResult:
        return self._draw_builtin(
            MOTION_HEATMAP_FRAGMENT,
            {'u_prevRawFrame': 1, 'u_motionThreshold': float(stage.threshold)},
            textures={1: self._previous.texture},
        )

    def _apply_custom(self, stage) -> LookupResult:
        program, result = self._programs.resolve(stage.source)
        self._draw(program)
        return result

    def present(self, target: moderngl.Framebuffer | None = None) -> moderngl.Framebuffer:
        """Copy the final output to ``target``, the context's screen by default.

        :raises ReadbackError: If there is nothing to present or no target
        """
        if not self._frame_loaded or self._current is None:
            raise ReadbackError("No frame loaded")
        if target is None:
            target = self.ctx.screen
        if target is None:
            raise ReadbackError("Context has no default framebuffer to present to")
        self.ctx.copy_framebuffer(dst=target, src=self._current.fbo)
        return target
