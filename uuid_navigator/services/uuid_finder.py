"""
UUID Finder - lookup of classes, properties and objects by id in a snapshot.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..models.records import (
    ClassRecord,
    ModelSnapshot,
    ObjectRecord,
    PropertyRecord,
    SourceLocation,
    class_type_name,
    data_type_name,
)

logger = logging.getLogger(__name__)


@dataclass
class UuidInfo:
    """What an id refers to, for hover-style display."""

    uuid: str
    kind: str  # "class", "property" or "object"
    class_name: Optional[str] = None
    class_uuid: Optional[str] = None
    property_name: Optional[str] = None
    object_name: Optional[str] = None
    description: str = ""
    data_type: Optional[int] = None
    class_type: Optional[int] = None
    location: Optional[SourceLocation] = None

    @property
    def data_type_label(self) -> Optional[str]:
        return data_type_name(self.data_type) if self.data_type is not None else None

    @property
    def class_type_label(self) -> Optional[str]:
        return class_type_name(self.class_type) if self.class_type is not None else None


class UuidFinder:
    """Index over one ModelSnapshot; rebuild it when the snapshot changes."""

    def __init__(self, snapshot: ModelSnapshot):
        self.snapshot = snapshot
        self._classes: Dict[str, ClassRecord] = {c.id: c for c in snapshot.classes}
        self._properties: Dict[str, PropertyRecord] = {p.id: p for p in snapshot.properties}
        self._objects: Dict[str, ObjectRecord] = {o.id: o for o in snapshot.objects}

        # Owning class per property/object, from linked lists
        self._property_owner: Dict[str, ClassRecord] = {}
        self._object_owner: Dict[str, ClassRecord] = {}
        for cls in snapshot.classes:
            for prop in cls.properties:
                self._property_owner.setdefault(prop.id, cls)
            for obj in cls.objects:
                self._object_owner.setdefault(obj.id, cls)

    def get_info(self, uuid: str) -> Optional[UuidInfo]:
        """
        Describe the record with this id.

        Args:
            uuid: Id in any letter case

        Returns:
            UuidInfo, or None if the id is unknown
        """
        key = uuid.strip().lower()

        cls = self._classes.get(key)
        if cls is not None:
            return UuidInfo(
                uuid=key,
                kind="class",
                class_name=cls.name,
                class_uuid=cls.id,
                description=cls.description,
                class_type=cls.class_type,
                location=cls.location,
            )

        prop = self._properties.get(key)
        if prop is not None:
            owner = self._property_owner.get(key)
            if owner is None and prop.source_class_id:
                owner = self._classes.get(prop.source_class_id)
            return UuidInfo(
                uuid=key,
                kind="property",
                class_name=owner.name if owner else None,
                class_uuid=owner.id if owner else None,
                property_name=prop.name,
                description=prop.description,
                data_type=prop.data_type,
                location=prop.location,
            )

        obj = self._objects.get(key)
        if obj is not None:
            owner = self._object_owner.get(key) or self._classes.get(obj.class_id)
            return UuidInfo(
                uuid=key,
                kind="object",
                class_name=owner.name if owner else None,
                class_uuid=owner.id if owner else obj.class_id,
                object_name=obj.name,
                description=obj.description,
                location=obj.location,
            )

        return None

    def find_definition(self, uuid: str) -> Optional[SourceLocation]:
        """Where the record with this id was defined, if known."""
        info = self.get_info(uuid)
        if info is None:
            logger.debug(f"No definition found for {uuid}")
            return None
        return info.location
