"""Scene module: sphere storage, material handles and scene generation.

Components:
    intersection: Sphere fields and closest-hit scene query
    manager: SceneManager with the unified material handle table
    random_scene: Procedural ball field
"""

from .intersection import (
    MAX_SPHERES,
    T_MAX,
    T_MIN,
    add_sphere,
    clear_scene,
    get_sphere,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .random_scene import create_random_scene, max_ball_density

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "get_sphere",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    "T_MIN",
    "T_MAX",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Random scene
    "create_random_scene",
    "max_ball_density",
]
