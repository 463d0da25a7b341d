"""
Tests for the CPU filter library.

Tests verify:
- Convolution tap orientation, zero padding, factor, bias and clamping
- Erosion/dilation window and border behavior
- Bit-plane slicing on exact luma boundaries
- Color-space decomposition channels
- Motion heatmap threshold and highlight blend
"""

import numpy as np
import pytest

from framestag.errors import InvalidParameterError
from framestag.filters import (
    ColorChannel,
    MorphologyOp,
    convolve,
    decompose_color_space,
    dilate,
    erode,
    luma,
    luma_milli,
    morphology,
    motion_heatmap,
    motion_mask,
    slice_bit_plane,
)
from framestag.kernels import Kernel, KERNELS


def solid(h, w, rgb, alpha=255):
    img = np.zeros((h, w, 4), dtype=np.uint8)
    img[:, :, :3] = rgb
    img[:, :, 3] = alpha
    return img


class TestConvolution:
    """Test kernel convolution."""

    def test_identity_reproduces_input(self, random_frame):
        result = convolve(random_frame.pixels, KERNELS['identity'])
        np.testing.assert_array_equal(result, random_frame.pixels)

    def test_alpha_forced_opaque(self):
        img = solid(4, 4, (10, 20, 30), alpha=7)
        result = convolve(img, KERNELS['identity'])
        assert (result[:, :, 3] == 255).all()
        assert tuple(result[1, 1, :3]) == (10, 20, 30)

    @pytest.mark.parametrize("name", ['gaussian_blur_3', 'gaussian_blur_5'])
    def test_uniform_blur_keeps_color(self, name):
        img = solid(12, 12, (10, 20, 30))
        result = convolve(img, KERNELS[name])
        margin = KERNELS[name].side // 2
        interior = result[margin:-margin, margin:-margin, :3].astype(int)
        assert np.abs(interior - np.array([10, 20, 30])).max() <= 1

    def test_out_of_range_taps_read_zero(self):
        img = solid(5, 5, (160, 160, 160))
        result = convolve(img, KERNELS['gaussian_blur_3'])
        # Corner keeps 4 of 16 weight units: 160 * 9 / 16 = 90
        assert result[0, 0, 0] == 90

    def test_tap_orientation(self):
        # Weight at row 0, column 1 samples the pixel one row above
        kernel = Kernel(matrix=(0, 1, 0, 0, 0, 0, 0, 0, 0))
        img = solid(6, 6, (0, 0, 0))
        img[2, :, :3] = 200
        result = convolve(img, kernel)
        assert (result[3, :, 0] == 200).all()
        assert (result[2, :, 0] == 0).all()

    def test_horizontal_tap_orientation(self):
        # Weight at column 2 samples the pixel to the right
        kernel = Kernel(matrix=(0, 0, 0, 0, 0, 1, 0, 0, 0))
        img = solid(4, 6, (0, 0, 0))
        img[:, 3, :3] = 50
        result = convolve(img, kernel)
        assert (result[:, 2, 0] == 50).all()
        assert (result[:, 3, 0] == 0).all()

    def test_factor_bias_and_clamp(self):
        img = solid(3, 3, (100, 200, 0))
        biased = Kernel(matrix=KERNELS['identity'].matrix, bias=10)
        result = convolve(img, biased)
        assert tuple(result[1, 1, :3]) == (110, 210, 10)

        doubled = Kernel(matrix=KERNELS['identity'].matrix, factor=2.0)
        result = convolve(img, doubled)
        assert tuple(result[1, 1, :3]) == (200, 255, 0)

    def test_sobel_on_ramp_is_positive(self, gradient_frame):
        result = convolve(gradient_frame.pixels, KERNELS['sobel_x'])
        assert (result[5:-5, 5:-5, 0] > 0).all()

    def test_invalid_kernel_raises(self):
        with pytest.raises(InvalidParameterError):
            convolve(solid(3, 3, (0, 0, 0)), Kernel(matrix=(1, 2), width=3, height=3))

    def test_rejects_non_rgba(self):
        with pytest.raises(ValueError):
            convolve(np.zeros((3, 3, 3), dtype=np.uint8), KERNELS['identity'])


class TestMorphology:
    """Test erosion and dilation."""

    @pytest.mark.parametrize("radius", [1, 2, 5])
    def test_erosion_removes_single_pixel(self, radius):
        img = solid(9, 9, (0, 0, 0))
        img[4, 4, :3] = 255
        result = erode(img, radius)
        assert (result[:, :, :3] == 0).all()

    def test_dilation_of_black_stays_black(self):
        result = dilate(solid(8, 8, (0, 0, 0)), 3)
        assert (result[:, :, :3] == 0).all()

    def test_dilation_grows_square(self):
        img = solid(9, 9, (0, 0, 0))
        img[4, 4, :3] = 255
        result = dilate(img, 2)
        bright = result[:, :, 0] == 255
        assert bright.sum() == 25
        assert bright[2:7, 2:7].all()

    def test_erosion_ignores_outside(self):
        # A white image stays white: outside neighbours do not count as black
        result = erode(solid(5, 5, (255, 255, 255)), 2)
        assert (result[:, :, :3] == 255).all()

    def test_string_op(self):
        img = solid(3, 3, (0, 0, 0))
        img[1, 1, :3] = 9
        np.testing.assert_array_equal(morphology(img, 'dilation', 1), dilate(img, 1))
        assert morphology(img, MorphologyOp.EROSION, 1)[1, 1, 0] == 0

    @pytest.mark.parametrize("radius", [0, 6, -1, 1.5, True])
    def test_invalid_radius(self, radius):
        with pytest.raises(InvalidParameterError):
            erode(solid(3, 3, (0, 0, 0)), radius)


class TestBitPlane:
    """Test bit-plane slicing."""

    def test_msb_boundary(self):
        img = np.zeros((1, 2, 4), dtype=np.uint8)
        img[0, 0, :3] = 128
        img[0, 1, :3] = 127
        img[:, :, 3] = 255
        result = slice_bit_plane(img, 8)
        assert tuple(result[0, 0]) == (255, 255, 255, 255)
        assert tuple(result[0, 1]) == (0, 0, 0, 255)

    def test_luma_not_red(self):
        # Pure red has luma 76.245, below 128
        result = slice_bit_plane(solid(2, 2, (255, 0, 0)), 8)
        assert (result[:, :, :3] == 0).all()

    def test_lsb(self):
        odd = slice_bit_plane(solid(1, 1, (3, 3, 3)), 1)
        even = slice_bit_plane(solid(1, 1, (4, 4, 4)), 1)
        assert odd[0, 0, 0] == 255
        assert even[0, 0, 0] == 0

    def test_every_gray_level(self):
        img = np.zeros((1, 256, 4), dtype=np.uint8)
        img[0, :, :3] = np.arange(256, dtype=np.uint8)[:, np.newaxis]
        img[:, :, 3] = 255
        for bit in range(1, 9):
            result = slice_bit_plane(img, bit)
            expected = np.where((np.arange(256) >> (bit - 1)) & 1, 255, 0)
            np.testing.assert_array_equal(result[0, :, 0], expected)

    @pytest.mark.parametrize("bit", [0, 9, 2.0])
    def test_invalid_bit(self, bit):
        with pytest.raises(InvalidParameterError):
            slice_bit_plane(solid(1, 1, (0, 0, 0)), bit)


class TestColorSpace:
    """Test color-space decomposition."""

    def test_rgb_passthrough_copy(self, random_frame):
        result = decompose_color_space(random_frame.pixels, ColorChannel.RGB)
        np.testing.assert_array_equal(result, random_frame.pixels)
        assert result.flags.writeable

    def test_grayscale(self):
        result = decompose_color_space(solid(2, 2, (100, 100, 100)), 'grayscale')
        assert tuple(result[0, 0]) == (100, 100, 100, 255)

    @pytest.mark.parametrize("rgb, hue", [
        ((255, 0, 0), 0),
        ((0, 255, 0), 85),
        ((0, 0, 255), 170),
        ((255, 0, 255), 212),
    ])
    def test_hue(self, rgb, hue):
        result = decompose_color_space(solid(1, 1, rgb), ColorChannel.HSV_HUE)
        assert abs(int(result[0, 0, 0]) - hue) <= 1

    def test_hue_and_saturation_of_gray(self):
        img = solid(1, 1, (90, 90, 90))
        assert decompose_color_space(img, ColorChannel.HSV_HUE)[0, 0, 0] == 0
        assert decompose_color_space(img, ColorChannel.HSV_SAT)[0, 0, 0] == 0

    def test_value_is_max_component(self):
        result = decompose_color_space(solid(1, 1, (10, 200, 30)), ColorChannel.HSV_VAL)
        assert result[0, 0, 0] == 200

    def test_saturation(self):
        result = decompose_color_space(solid(1, 1, (200, 100, 100)), ColorChannel.HSV_SAT)
        assert abs(int(result[0, 0, 0]) - 128) <= 1

    def test_unknown_channel(self):
        with pytest.raises(InvalidParameterError):
            decompose_color_space(solid(1, 1, (0, 0, 0)), 'LAB')


class TestMotion:
    """Test motion heatmap."""

    @pytest.mark.parametrize("threshold", [0.0, 0.05, 0.5, 1.0])
    def test_identical_frames_never_highlight(self, random_frame, threshold):
        result = motion_heatmap(random_frame.pixels, random_frame.pixels, threshold)
        np.testing.assert_array_equal(result, random_frame.pixels)

    def test_changed_pixel_is_blended(self):
        current = solid(2, 2, (255, 255, 255))
        previous = current.copy()
        previous[0, 0, :3] = 0
        result = motion_heatmap(current, previous, 0.05)
        r, g, b, a = (int(v) for v in result[0, 0])
        assert r == 153
        assert g == 255
        assert abs(b - 178) <= 1
        assert a == 217
        np.testing.assert_array_equal(result[1, 1], current[1, 1])

    def test_threshold_is_strict(self):
        current = solid(1, 1, (51, 51, 51))
        previous = solid(1, 1, (0, 0, 0))
        diff = abs(luma(current) - luma(previous))[0, 0] / 255.0
        assert not motion_mask(current, previous, diff)[0, 0]
        assert motion_mask(current, previous, diff - 0.01)[0, 0]

    def test_default_threshold(self):
        current = solid(1, 1, (20, 20, 20))
        previous = solid(1, 1, (10, 10, 10))
        # 10 / 255 = 0.039 is below the 0.05 default
        np.testing.assert_array_equal(motion_heatmap(current, previous), current)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            motion_heatmap(solid(2, 2, (0, 0, 0)), solid(3, 3, (0, 0, 0)), 0.1)

    @pytest.mark.parametrize("threshold", [-0.1, 1.5, 'high'])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(InvalidParameterError):
            motion_heatmap(solid(1, 1, (0, 0, 0)), solid(1, 1, (0, 0, 0)), threshold)


class TestLuma:
    def test_luma_milli_exact(self):
        img = solid(1, 1, (128, 128, 128))
        assert luma_milli(img)[0, 0] == 128000
        assert abs(luma(img)[0, 0] - 128.0) < 1e-9
