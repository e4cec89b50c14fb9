"""
Node palette for ROUTEFLOW.

Loads the list of node types shown in the components panel (the drag source
for new nodes) from palette.yaml. Each entry has:
  - type: node type tag (must be known to the registry)
  - name: button label
  - icon: material icon name
  - description: tooltip
Entries are grouped by category, in file order.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from routeflow.node_types import DEFAULT_REGISTRY, NodeTypeRegistry, label_for
from routeflow.paths import get_package_dir

logger = logging.getLogger(__name__)

DEFAULT_ICON = "widgets"


@dataclass(frozen=True)
class PaletteEntry:
    node_type: str
    name: str
    category: str
    icon: str = DEFAULT_ICON
    description: str = ""


class NodePalette:
    """
    Loads, validates and caches palette entries.

    Invalid entries are skipped and their problems collected in
    `validation_errors` rather than raised; a broken palette file should
    not stop the editor from starting.
    """

    def __init__(self, palette_path: Path = None, registry: Optional[NodeTypeRegistry] = None):
        self.palette_path = palette_path or (get_package_dir() / "palette.yaml")
        self._registry = registry or DEFAULT_REGISTRY
        self._entries: Optional[List[PaletteEntry]] = None
        self.validation_errors: List[str] = []

    def _validate_entry(self, raw, category: str, index: int) -> List[str]:
        errors = []
        if not isinstance(raw, dict):
            return [f"{category}[{index}]: entry must be a mapping"]
        node_type = raw.get('type')
        if not node_type:
            errors.append(f"{category}[{index}]: missing required 'type'")
        elif not self._registry.is_known(node_type):
            errors.append(f"{category}[{index}]: unknown node type '{node_type}'")
        return errors

    def load(self, use_cache: bool = True) -> List[PaletteEntry]:
        if use_cache and self._entries is not None:
            return self._entries

        self.validation_errors = []
        entries: List[PaletteEntry] = []

        try:
            with open(self.palette_path, 'r', encoding='utf-8') as f:
                document = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self.validation_errors.append(f"Palette file not found: {self.palette_path}")
            document = {}
        except yaml.YAMLError as e:
            logger.warning(f"Invalid YAML in {self.palette_path}: {e}")
            self.validation_errors.append(f"Invalid YAML: {e}")
            document = {}

        seen = set()
        for category in document.get('categories') or []:
            category_name = category.get('name', 'Other')
            for i, raw in enumerate(category.get('nodes') or []):
                errors = self._validate_entry(raw, category_name, i)
                if errors:
                    self.validation_errors.extend(errors)
                    continue
                node_type = raw['type']
                if node_type in seen:
                    self.validation_errors.append(f"{category_name}[{i}]: duplicate node type '{node_type}'")
                    continue
                seen.add(node_type)
                entries.append(PaletteEntry(
                    node_type=node_type,
                    name=raw.get('name') or label_for(node_type),
                    category=category_name,
                    icon=raw.get('icon') or DEFAULT_ICON,
                    description=raw.get('description', ''),
                ))

        for error in self.validation_errors:
            logger.warning(f"Palette: {error}")

        self._entries = entries
        return entries

    def by_category(self) -> Dict[str, List[PaletteEntry]]:
        grouped: Dict[str, List[PaletteEntry]] = {}
        for entry in self.load():
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def get(self, node_type: str) -> Optional[PaletteEntry]:
        for entry in self.load():
            if entry.node_type == node_type:
                return entry
        return None
