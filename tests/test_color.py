"""Unit tests for sky color, gamma correction and quantization."""

import numpy as np
import taichi as ti


class TestSkyColor:
    """Tests for the sky gradient."""

    def test_sky_straight_up_is_blue(self):
        from src.pathtracer.core.color import sky_color
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sky_color(vec3(0.0, 3.0, 0.0))

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.5, 0.7, 1.0])

    def test_sky_straight_down_is_white(self):
        from src.pathtracer.core.color import sky_color
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sky_color(vec3(0.0, -1.0, 0.0))

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [1.0, 1.0, 1.0])

    def test_sky_horizontal_is_halfway(self):
        from src.pathtracer.core.color import sky_color
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sky_color(vec3(1.0, 0.0, -1.0))

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.75, 0.85, 1.0])


class TestQuantize:
    """Tests for gamma correction followed by 8-bit conversion."""

    def test_white_maps_to_255_for_any_gamma(self):
        from src.pathtracer.core.color import gamma_correct, quantize
        from src.pathtracer.core.ray import vec3

        gammas = [0.5, 1.0, 2.0, 2.2, 4.0]
        n = len(gammas)
        result = ti.Vector.field(3, dtype=ti.i32, shape=n)
        inv = ti.field(dtype=ti.f64, shape=n)
        inv.from_numpy(np.array([1.0 / g for g in gammas]))

        @ti.kernel
        def test_kernel():
            for i in range(n):
                result[i] = quantize(gamma_correct(vec3(1.0, 1.0, 1.0), inv[i]))

        test_kernel()
        assert np.all(result.to_numpy() == 255)

    def test_black_maps_to_zero(self):
        from src.pathtracer.core.color import gamma_correct, quantize
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = quantize(gamma_correct(vec3(0.0, 0.0, 0.0), 0.5))

        test_kernel()
        assert list(result[None].to_numpy()) == [0, 0, 0]

    def test_truncates_toward_zero(self):
        from src.pathtracer.core.color import quantize
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = quantize(vec3(0.5, 0.999, 0.25))

        test_kernel()
        # 127.5 -> 127, 254.745 -> 254, 63.75 -> 63
        assert list(result[None].to_numpy()) == [127, 254, 63]

    def test_out_of_range_saturates(self):
        from src.pathtracer.core.color import quantize
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = quantize(vec3(1.7, -0.2, 1.0))

        test_kernel()
        assert list(result[None].to_numpy()) == [255, 0, 255]

    def test_gamma_two_is_square_root(self):
        from src.pathtracer.core.color import gamma_correct
        from src.pathtracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = gamma_correct(vec3(0.25, 0.64, 0.0), 0.5)

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), [0.5, 0.8, 0.0])
