"""Scene manager: material handles, sphere registration and serialisation.

Materials live in one registry per type (see ``src.pathtracer.materials``).
The SceneManager hands out a single handle space across all of them and
records, for every handle, which registry it belongs to and where. Spheres
store only the handle, so any number of spheres can share one material.

The tracer dispatches on the handle at run time:

    material_types[handle]        -> MaterialType of the material
    material_type_indices[handle] -> index inside that type's registry

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(ior=1.5)
    >>> scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    0
"""

import json
import logging
import numbers
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any

import taichi as ti

from src.pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.pathtracer.materials.metal import (
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
)
from src.pathtracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Closed set of material variants used for scatter dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of material handles across all types
MAX_MATERIALS = 2048

# material_types[i] stores the MaterialType for handle i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the index of handle i in its type registry
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a handle.

    Returns:
        The material type as an integer (see MaterialType), or -1 for an
        invalid handle.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index of a handle inside its type-specific registry.

    Returns:
        The registry index, or -1 for an invalid handle.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material handle.
        material_type: The variant of the material.
        type_index: The index within the type-specific registry.
        params: The material parameters as stored (fuzz already clamped).
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material handle assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    """Convert a 3-element sequence to a tuple of floats."""
    try:
        x, y, z = values
        return (float(x), float(y), float(z))
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of 3 numbers, got {values!r}") from e


def _scene_number(value: Any, name: str) -> float:
    # JSON booleans and strings are not accepted as numbers
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


def _scene_triple(values: Any, name: str) -> tuple[float, float, float]:
    if not isinstance(values, (list, tuple)) or len(values) != 3:
        raise ValueError(f"{name} must be a list of 3 numbers, got {values!r}")
    x, y, z = (_scene_number(v, name) for v in values)
    return (x, y, z)


def _scene_list(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    entries = data.get(key, [])
    if not isinstance(entries, list):
        raise ValueError(f"Scene '{key}' must be a list, got {type(entries).__name__}")
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Scene {key}[{i}] must be an object, got {entry!r}")
    return entries


def _parse_scene(data: Any) -> tuple[list, list]:
    """Check a scene dictionary and convert its values.

    Returns:
        A tuple (materials, spheres) where materials is a list of
        (type, params) pairs and spheres a list of
        (center, radius, material_id) triples.

    Raises:
        ValueError: If the dictionary is not shaped like to_dict() output.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Scene must be an object, got {type(data).__name__}")

    materials = []
    for i, entry in enumerate(_scene_list(data, "materials")):
        mat_type = entry.get("type")
        if not isinstance(mat_type, str):
            raise ValueError(f"materials[{i}].type must be a string, got {mat_type!r}")
        mat_type = mat_type.lower()
        prefix = f"materials[{i}]"
        if mat_type == "lambertian":
            albedo = entry.get("albedo", [0.5, 0.5, 0.5])
            params = {"albedo": _scene_triple(albedo, f"{prefix}.albedo")}
        elif mat_type == "metal":
            params = {
                "albedo": _scene_triple(entry.get("albedo", [0.8, 0.8, 0.8]), f"{prefix}.albedo"),
                "fuzz": _scene_number(entry.get("fuzz", 0.0), f"{prefix}.fuzz"),
            }
        elif mat_type == "dielectric":
            params = {"ior": _scene_number(entry.get("ior", 1.5), f"{prefix}.ior")}
        else:
            raise ValueError(f"Unknown material type: {mat_type}")
        materials.append((mat_type, params))

    spheres = []
    for i, entry in enumerate(_scene_list(data, "spheres")):
        prefix = f"spheres[{i}]"
        material_id = entry.get("material_id", 0)
        if isinstance(material_id, bool) or not isinstance(material_id, numbers.Integral):
            raise ValueError(f"{prefix}.material_id must be an integer, got {material_id!r}")
        spheres.append(
            (
                _scene_triple(entry.get("center", [0.0, 0.0, 0.0]), f"{prefix}.center"),
                _scene_number(entry.get("radius", 1.0), f"{prefix}.radius"),
                int(material_id),
            )
        )
    return materials, spheres


class SceneManager:
    """Builds the sphere world and its material table.

    Creating a SceneManager clears every scene and material registry, so only
    one scene exists at a time.

    Attributes:
        materials: MaterialInfo for every handle, indexed by handle.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        >>> scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)
        0
        >>> scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), fuzz=0.0)
        (1, 1)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()

        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()

        _clear_material_tracking()

        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Clear the entire scene (spheres and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign the next handle to an entry of a type-specific registry."""
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance color, each component in [0, 1].

        Returns:
            The material handle.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_triple(albedo, "albedo")
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": albedo}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material.

        Args:
            albedo: The reflective color, each component in [0, 1].
            fuzz: Perturbation radius. Values above 1 are clamped to 1.

        Returns:
            The material handle.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1] or fuzz is
                negative.
        """
        albedo = _as_triple(albedo, "albedo")
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": clamp_fuzz(fuzz)}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            ior: Index of refraction. Default is 1.5 (glass).

        Returns:
            The material handle.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If ior is not positive.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(
            MaterialType.DIELECTRIC, type_index, {"ior": float(ior)}
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by handle, or None if unknown."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a handle outside of Taichi kernels."""
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere that uses an existing material.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere, must be positive.
            material_id: A handle returned by one of the add_*_material
                methods.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is not positive or the handle is invalid.
        """
        center = _as_triple(center, "center")
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=float(radius),
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a JSON-compatible dictionary."""
        materials = []
        for mat in self.materials:
            entry: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            materials.append(entry)

        spheres = [
            {
                "center": list(sphere.center),
                "radius": sphere.radius,
                "material_id": sphere.material_id,
            }
            for sphere in self.spheres
        ]
        return {"materials": materials, "spheres": spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the current scene with one loaded from a dictionary.

        The whole dictionary is checked before anything is registered. If a
        value is rejected while the scene is being built, the scene is left
        empty.

        Args:
            data: Dictionary with 'materials' and 'spheres' lists in the
                format produced by to_dict().

        Raises:
            ValueError: If the data is not shaped like to_dict() output,
                contains an unknown material type or an invalid parameter,
                or has a sphere that refers to a missing material.
            RuntimeError: If the scene exceeds a capacity limit.
        """
        materials, spheres = _parse_scene(data)

        self.clear()
        try:
            for mat_type, params in materials:
                if mat_type == "lambertian":
                    self.add_lambertian_material(params["albedo"])
                elif mat_type == "metal":
                    self.add_metal_material(params["albedo"], params["fuzz"])
                else:
                    self.add_dielectric_material(params["ior"])

            for center, radius, material_id in spheres:
                self.add_sphere(center, radius, material_id)
        except (ValueError, RuntimeError):
            self.clear()
            raise

        logger.info(
            "Loaded scene with %d spheres and %d materials",
            len(self.spheres),
            len(self.materials),
        )

    def save(self, path: str | Path) -> None:
        """Write the scene as JSON."""
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Saved scene to %s", path)

    def load(self, path: str | Path) -> None:
        """Replace the current scene with one read from a JSON file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON or not a valid scene.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Scene file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Scene file {path} must contain a JSON object")
        self.from_dict(data)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS
