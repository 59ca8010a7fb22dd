"""Material factory and registry.

Run configurations select a constitutive model by name. This module
centralizes the name -> class mapping and owns the configured instances so
particles share them by id instead of copying.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional

from mpm_core.constitutive import Bingham, LinearElastic, Material

_ALIASES = {
    "linearelastic": "linear_elastic",
    "linear_elastic": "linear_elastic",
    "linear-elastic": "linear_elastic",
    "linearelastic2d": "linear_elastic",
    "linearelastic3d": "linear_elastic",
    "elastic": "linear_elastic",
    "le": "linear_elastic",
    "bingham": "bingham",
    "bingham2d": "bingham",
    "bingham3d": "bingham",
    "bingham-fluid": "bingham",
}

_MODELS = {
    "linear_elastic": LinearElastic,
    "bingham": Bingham,
}


def normalize_material_type(name: str) -> str:
    key = (name or "").strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _MODELS:
        raise ValueError(f"Unknown material type '{name}'. Use 'LinearElastic' or 'Bingham'.")
    return key


def make_material(type_name: str, material_id: int, properties: Mapping[str, Any], dim: int = 3) -> Material:
    """Instantiate the model selected by ``type_name``.

    Unknown type names raise ``ValueError``. Bad parameters do not raise here;
    the returned instance carries ``status == False`` and ``error``.
    """
    cls = _MODELS[normalize_material_type(type_name)]
    return cls(id=int(material_id), properties=dict(properties), dim=int(dim))


class MaterialRegistry:
    """Owns configured materials, keyed by id."""

    def __init__(self) -> None:
        self._materials: Dict[int, Material] = {}

    def add(self, material: Material) -> Material:
        if not material.status:
            raise ValueError(f"material #{material.id} ({material.type_name}) is invalid: {material.error}")
        if material.id in self._materials:
            raise ValueError(f"duplicate material id {material.id}")
        self._materials[material.id] = material
        return material

    def create(self, type_name: str, material_id: int, properties: Mapping[str, Any], dim: int = 3) -> Material:
        return self.add(make_material(type_name, material_id, properties, dim))

    def get(self, material_id: int) -> Optional[Material]:
        return self._materials.get(int(material_id))

    def __getitem__(self, material_id: int) -> Material:
        return self._materials[int(material_id)]

    def __contains__(self, material_id: object) -> bool:
        return material_id in self._materials

    def __iter__(self) -> Iterator[Material]:
        return iter(self._materials.values())

    def __len__(self) -> int:
        return len(self._materials)
