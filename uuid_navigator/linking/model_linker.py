"""
Model Linker - resolves class/property/object relationships across files.

Property linking:
1. Explicit ``classes_property_definitions`` rows
2. Auto-linked properties from settings (every PROCESSABLE class, or one
   concrete class when the rule names it)

Object linking:
1. Direct match on ``class_id`` (the catch-all class is skipped when
   ``ignore_status`` is on)
2. Parent directory name of the object's file, matched case-insensitively
   against class names and aliases
3. Per-class de-duplication by object id
4. Everything still unattached goes to the catch-all class

Linking mutates the ``properties``/``objects`` lists of the class records
it is given; callers pass detached copies (``ClassRecord.detached``).
"""

import logging
import re
from dataclasses import replace
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from pyuca import Collator

from ..config.settings import AutoLinkedProperty, NavigatorSettings, load_settings
from ..models.records import (
    ClassPropertyLink,
    ClassRecord,
    ClassType,
    ModelSnapshot,
    ObjectRecord,
    PropertyRecord,
)

logger = logging.getLogger(__name__)

AliasLookup = Callable[[str], Optional[str]]
SettingsProvider = Callable[[], NavigatorSettings]

_PATH_SEPARATORS_RE = re.compile(r"[\\/]")


@lru_cache(maxsize=None)
def _collator() -> Collator:
    # loads the DUCET table once per process
    return Collator()


def _name_key(name: str) -> tuple:
    """Unicode collation key; base letters decide before accents and case."""
    return _collator().sort_key(name or "")


def _sorted_by_name(items: Iterable) -> list:
    return sorted(items, key=lambda item: _name_key(item.name))


def class_name_from_path(file_path: Optional[str]) -> Optional[str]:
    """Name of the directory containing ``file_path``, lower-cased."""
    if not file_path:
        return None
    parts = _PATH_SEPARATORS_RE.split(file_path)
    if len(parts) < 2:
        return None
    return parts[-2].lower()


class ModelLinker:
    """
    Links parsed records into a class-centric model.

    Settings are fetched from ``settings_provider`` at the start of every
    linking call, so configuration changes apply to the next rebuild.
    """

    def __init__(
        self,
        alias_lookup: Optional[AliasLookup] = None,
        settings_provider: SettingsProvider = load_settings,
    ):
        """
        Initialize linker.

        Args:
            alias_lookup: ``class_id -> alias`` used for path-based matching
            settings_provider: Callable returning current NavigatorSettings
        """
        self.alias_lookup = alias_lookup
        self.settings_provider = settings_provider

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def link_classes_and_properties(
        self,
        classes: Sequence[ClassRecord],
        properties: Sequence[PropertyRecord],
        links: Sequence[ClassPropertyLink],
        auto_link_rules: Optional[Sequence[AutoLinkedProperty]] = None,
    ) -> None:
        """
        Attach properties to classes from link rows and auto-link rules.

        Args:
            classes: Class records to populate
            properties: All known properties
            links: Explicit class/property associations
            auto_link_rules: Rules to apply; defaults to the configured ones
        """
        class_map = {cls.id: cls for cls in classes}
        property_map = {prop.id: prop for prop in properties}
        attached = {cls.id: {p.id for p in cls.properties} for cls in classes}

        def attach(cls: ClassRecord, prop: PropertyRecord) -> None:
            if prop.id not in attached[cls.id]:
                attached[cls.id].add(prop.id)
                cls.properties.append(prop)

        for link in links:
            cls = class_map.get(link.class_id)
            prop = property_map.get(link.property_id)
            if cls is None or prop is None:
                missing = []
                if cls is None:
                    missing.append(f"class {link.class_id}")
                if prop is None:
                    missing.append(f"property {link.property_id}")
                logger.warning(f"Unresolvable link {link.class_id} -> {link.property_id}: missing {' and '.join(missing)}")
                continue
            attach(cls, prop)

        if auto_link_rules is None:
            auto_link_rules = self.settings_provider().auto_linked_properties

        for rule in auto_link_rules:
            prop = property_map.get(rule.uuid.strip().lower())
            if prop is None:
                logger.warning(f"Auto-linked property {rule.name or rule.uuid} ({rule.uuid}) not found")
                continue

            if rule.class_id:
                target = class_map.get(rule.class_id.strip().lower())
                if target is None:
                    logger.warning(f"Auto-link target class {rule.class_id} for property {prop.name} not found")
                    continue
                attach(target, prop)
            else:
                for cls in classes:
                    if cls.class_type == ClassType.PROCESSABLE:
                        attach(cls, prop)

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def _build_name_table(
        self, classes: Sequence[ClassRecord], alias_lookup: Optional[AliasLookup]
    ) -> Dict[str, ClassRecord]:
        table: Dict[str, ClassRecord] = {}
        for cls in classes:
            table.setdefault(cls.name.lower(), cls)

        if alias_lookup is not None:
            for cls in classes:
                alias = alias_lookup(cls.id)
                if alias and alias.strip():
                    table.setdefault(alias.strip().lower(), cls)

        return table

    def link_classes_and_objects(
        self,
        classes: Sequence[ClassRecord],
        objects: Sequence[ObjectRecord],
        alias_lookup: Optional[AliasLookup] = None,
    ) -> None:
        """
        Attach objects to classes (direct, path-based, then catch-all).

        Existing ``objects`` lists are replaced, so repeated calls do not
        accumulate.

        Args:
            classes: Class records to populate
            objects: All known objects
            alias_lookup: Overrides the linker's alias lookup for this call
        """
        settings = self.settings_provider()
        alias_lookup = alias_lookup or self.alias_lookup
        ignore_uuid = settings.ignore_uuid

        for cls in classes:
            cls.objects = []

        class_map = {cls.id: cls for cls in classes}
        name_table = self._build_name_table(classes, alias_lookup)
        linked_ids = set()

        # Pass 1: direct class_id
        for obj in objects:
            cls = class_map.get(obj.class_id)
            if cls is None:
                continue
            if settings.ignore_status and ignore_uuid and cls.id == ignore_uuid:
                continue
            cls.objects.append(obj)
            linked_ids.add(obj.id)

        # Pass 2: parent directory name or alias
        for obj in objects:
            if obj.id in linked_ids:
                continue
            candidate = class_name_from_path(obj.file_path)
            if candidate is None:
                continue
            cls = name_table.get(candidate)
            if cls is not None:
                logger.debug(f"Linked object {obj.id} to {cls.name} by path {obj.file_path}")
                cls.objects.append(obj)
                linked_ids.add(obj.id)

        # Pass 3: de-duplicate, first occurrence wins
        for cls in classes:
            seen = set()
            unique: List[ObjectRecord] = []
            for obj in cls.objects:
                if obj.id not in seen:
                    seen.add(obj.id)
                    unique.append(obj)
            if len(unique) != len(cls.objects):
                logger.debug(f"Removed {len(cls.objects) - len(unique)} duplicate objects from {cls.name}")
            cls.objects = unique

        # Pass 4: catch-all
        unlinked = [obj for obj in objects if obj.id not in linked_ids]
        catch_all = class_map.get(ignore_uuid) if ignore_uuid else None

        if unlinked and catch_all is not None:
            present = {o.id for o in catch_all.objects}
            for obj in unlinked:
                if obj.id not in present:
                    present.add(obj.id)
                    catch_all.objects.append(obj)
            logger.info(f"Linked {len(unlinked)} unlinked objects to {catch_all.name}")
        elif unlinked:
            logger.debug(f"{len(unlinked)} objects could not be linked to any class")

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def sort_model(
        self,
        classes: Sequence[ClassRecord],
        properties: Sequence[PropertyRecord],
        objects: Sequence[ObjectRecord],
    ) -> ModelSnapshot:
        """
        Sort everything by name in Unicode collation order.

        Returns new lists and new class records; the inputs are untouched.
        """
        sorted_classes = [
            replace(
                cls,
                properties=_sorted_by_name(cls.properties),
                objects=_sorted_by_name(cls.objects),
            )
            for cls in _sorted_by_name(classes)
        ]

        return ModelSnapshot(
            classes=sorted_classes,
            properties=_sorted_by_name(properties),
            objects=_sorted_by_name(objects),
        )

    def build_model(
        self,
        classes: Sequence[ClassRecord],
        properties: Sequence[PropertyRecord],
        links: Sequence[ClassPropertyLink],
        objects: Sequence[ObjectRecord],
    ) -> ModelSnapshot:
        """
        Link and sort a merged record set into a snapshot.

        Class records are detached first, so the caller's records (and any
        cache holding them) are never modified.
        """
        working = [cls.detached() for cls in classes]
        self.link_classes_and_properties(working, properties, links)
        self.link_classes_and_objects(working, objects)
        return self.sort_model(working, properties, objects)
