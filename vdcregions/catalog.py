"""
Canonical region catalog: one YAML file per region under data/regions/.

Example file (data/regions/aws/aws_us_east_1.yaml):

    id: aws-us-east-1
    name: US East 1 (N. Virginia)
    provider: AWS
    coords: [38.13, -78.45]
    aliases: [N. Virginia]
    services:
      vdc_vault:
        - {edition: Foundation, tier: Core}
      vdc_m365: true

Dependencies:
  pip install pyyaml
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

DEFAULT_DATA_DIR = Path(os.getenv("VDC_REGIONS_DATA_DIR", "data/regions"))
YAML_SUFFIXES = {".yaml", ".yml"}
REQUIRED_FIELDS = ("id", "name", "provider")


class CatalogError(RuntimeError):
    pass


@dataclass(frozen=True)
class CatalogLoadError:
    """A region file that could not be loaded (skipped, not fatal)."""
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message}


@dataclass(frozen=True)
class CanonicalRegion:
    id: str
    name: str
    provider: str
    coords: Tuple[float, ...] = ()
    aliases: Tuple[str, ...] = ()
    services: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    file_path: str = ""

    def has_service(self, service_key: str) -> bool:
        return bool(self.services.get(service_key))

    def tier_combinations(self, service_key: str) -> Set[Tuple[str, str]]:
        """(edition, tier) pairs recorded for a tiered service."""
        value = self.services.get(service_key)
        if not isinstance(value, list):
            return set()
        out: Set[Tuple[str, str]] = set()
        for entry in value:
            if isinstance(entry, dict) and entry.get("edition") and entry.get("tier"):
                out.add((str(entry["edition"]), str(entry["tier"])))
        return out

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], file_path: str = "") -> "CanonicalRegion":
        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise CatalogError(f"Missing required field(s): {', '.join(missing)}")
        services = data.get("services") or {}
        if not isinstance(services, dict):
            raise CatalogError("'services' must be a mapping")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            provider=str(data["provider"]),
            coords=tuple(data.get("coords") or ()),
            aliases=tuple(str(a) for a in (data.get("aliases") or ())),
            services=dict(services),
            file_path=file_path,
        )


def find_region_files(data_dir: Path) -> List[Path]:
    """All YAML files below data_dir, in sorted (deterministic) order."""
    return sorted(p for p in data_dir.rglob("*") if p.is_file() and p.suffix.lower() in YAML_SUFFIXES)


def load_region_file(path: Path) -> CanonicalRegion:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read file: {e}") from e
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CatalogError(f"YAML syntax error: {e}") from e
    if not isinstance(data, dict):
        raise CatalogError("File must contain a YAML mapping")
    return CanonicalRegion.from_mapping(data, file_path=str(path))


def load_catalog(
    data_dir: Optional[Path] = None,
) -> Tuple[List[CanonicalRegion], List[CatalogLoadError]]:
    """
    Recursively load every region file under data_dir.

    Files that fail to load are skipped and reported, since each one lowers
    matching accuracy for the whole run.

    Returns: (regions, load_errors)
    """
    data_dir = (data_dir or DEFAULT_DATA_DIR).expanduser()
    if not data_dir.is_dir():
        err = CatalogLoadError(str(data_dir), "Catalog directory not found")
        print(f"[catalog] ERROR: {err.message}: {err.path}", file=sys.stderr, flush=True)
        return [], [err]

    regions: List[CanonicalRegion] = []
    errors: List[CatalogLoadError] = []
    for path in find_region_files(data_dir):
        try:
            regions.append(load_region_file(path))
        except CatalogError as e:
            errors.append(CatalogLoadError(str(path), str(e)))
            print(f"[catalog] Error reading {path}: {e}", file=sys.stderr, flush=True)

    return regions, errors
