"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside
- Ray missing sphere
- Ray tangent to sphere (not a hit)
- Ray starting inside sphere
- Non-normalized ray directions
- Open (t_min, t_max) interval
"""

import numpy as np
import taichi as ti


def _intersect(origin, direction, center=(0.0, 0.0, 0.0), radius=1.0, t_min=0.001, t_max=1e30):
    """Run hit_sphere once and return (hit, t, point, normal, material_id)."""
    from src.pathtracer.core.ray import Ray, vec3
    from src.pathtracer.geometry.sphere import hit_sphere, make_sphere

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f64, shape=())
    point = ti.Vector.field(3, dtype=ti.f64, shape=())
    normal = ti.Vector.field(3, dtype=ti.f64, shape=())
    material = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel():
        ray = Ray(
            origin=vec3(origin[0], origin[1], origin[2]),
            direction=vec3(direction[0], direction[1], direction[2]),
        )
        sphere = make_sphere(vec3(center[0], center[1], center[2]), radius, 7)
        record = hit_sphere(ray, sphere, t_min, t_max)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        material[None] = record.material_id

    test_kernel()
    return hit[None], t_val[None], point[None].to_numpy(), normal[None].to_numpy(), material[None]


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        """Test make_sphere convenience function."""
        from src.pathtracer.core.ray import vec3
        from src.pathtracer.geometry.sphere import make_sphere

        center_result = ti.Vector.field(3, dtype=ti.f64, shape=())
        radius_result = ti.field(dtype=ti.f64, shape=())
        material_result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5, 4)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius
            material_result[None] = sphere.material_id

        test_kernel()
        np.testing.assert_allclose(center_result[None].to_numpy(), [1.0, 2.0, 3.0])
        assert radius_result[None] == 0.5
        assert material_result[None] == 4

    def test_miss_record(self):
        from src.pathtracer.geometry.sphere import make_miss_record

        hit = ti.field(dtype=ti.i32, shape=())
        material = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            record = make_miss_record()
            hit[None] = record.hit
            material[None] = record.material_id

        test_kernel()
        assert hit[None] == 0
        assert material[None] == -1


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit_from_outside(self):
        hit, t, point, normal, material = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))

        assert hit == 1
        # Front of the sphere is at z=1, so t=4
        assert abs(t - 4.0) < 1e-12
        np.testing.assert_allclose(point, [0.0, 0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(normal, [0.0, 0.0, 1.0], atol=1e-12)
        assert material == 7

    def test_miss(self):
        hit, _t, _point, _normal, material = _intersect((0.0, 2.0, 5.0), (0.0, 0.0, -1.0))

        assert hit == 0
        assert material == -1

    def test_sphere_behind_ray_is_missed(self):
        hit, *_ = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))

        assert hit == 0

    def test_tangent_ray_does_not_hit(self):
        """A zero discriminant is not a hit."""
        hit, *_ = _intersect((0.0, 1.0, 5.0), (0.0, 0.0, -1.0))

        assert hit == 0

    def test_hit_from_inside_uses_far_root(self):
        hit, t, point, normal, _material = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert hit == 1
        assert abs(t - 1.0) < 1e-12
        np.testing.assert_allclose(point, [0.0, 0.0, -1.0], atol=1e-12)
        # Normal keeps pointing away from the center, along the ray
        np.testing.assert_allclose(normal, [0.0, 0.0, -1.0], atol=1e-12)

    def test_non_normalized_direction(self):
        """t is measured in units of the direction length."""
        hit, t, point, normal, _material = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, -2.0))

        assert hit == 1
        assert abs(t - 2.0) < 1e-12
        np.testing.assert_allclose(point, [0.0, 0.0, 1.0], atol=1e-12)
        assert abs(np.linalg.norm(normal) - 1.0) < 1e-12

    def test_normal_is_unit_for_large_radius(self):
        hit, _t, point, normal, _material = _intersect(
            (0.0, 5.0, 0.0), (0.0, -1.0, 0.0), center=(0.0, -1000.0, 0.0), radius=1000.0
        )

        assert hit == 1
        np.testing.assert_allclose(point, [0.0, 0.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(normal, [0.0, 1.0, 0.0], atol=1e-12)

    def test_t_max_is_exclusive(self):
        # Both roots (4 and 6) lie outside (0.001, 4.0)
        hit, *_ = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=4.0)

        assert hit == 0

    def test_far_root_used_when_near_root_below_t_min(self):
        hit, t, *_ = _intersect((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_min=4.5)

        assert hit == 1
        assert abs(t - 6.0) < 1e-12
