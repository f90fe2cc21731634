# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/libvirt/domain_list.py
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..core.exceptions import DomainExists
from .domain import DomainDef, DomainObj

logger = logging.getLogger(__name__)


class DomainObjList:
    """
    In-memory registry of domain objects, indexed by name and uuid.

    The registry owns every DomainObj it hands out. Lookups and
    mutations are serialized by an internal lock.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, DomainObj] = {}
        self._by_uuid: Dict[str, DomainObj] = {}
        self._lock = threading.RLock()

    def add(self, definition: DomainDef) -> DomainObj:
        """
        Register a definition and return its object.

        A definition whose name (or uuid) is already known replaces the
        stored definition and keeps the existing object and its private
        data. A name clash with a different uuid is refused.
        """
        with self._lock:
            existing = self._by_uuid.get(definition.uuid) if definition.uuid else None
            if existing is not None and existing.name != definition.name:
                raise DomainExists(
                    msg=f"domain '{existing.name}' is already defined with uuid {definition.uuid}"
                )

            if existing is None:
                existing = self._by_name.get(definition.name)
                if (
                    existing is not None
                    and existing.definition.uuid
                    and definition.uuid
                    and existing.definition.uuid != definition.uuid
                ):
                    raise DomainExists(
                        msg=f"domain '{definition.name}' already exists with uuid {existing.definition.uuid}"
                    )

            if existing is not None:
                with existing:
                    old_uuid = existing.definition.uuid
                    existing.definition = definition
                if old_uuid and old_uuid != definition.uuid:
                    self._by_uuid.pop(old_uuid, None)
                if definition.uuid:
                    self._by_uuid[definition.uuid] = existing
                logger.debug("Replaced definition of domain %s", definition.name)
                return existing

            obj = DomainObj(definition)
            self._by_name[definition.name] = obj
            if definition.uuid:
                self._by_uuid[definition.uuid] = obj
            logger.debug("Added domain %s", definition.name)
            return obj

    def remove(self, obj: DomainObj) -> None:
        with self._lock:
            self._by_name.pop(obj.name, None)
            if obj.definition.uuid:
                self._by_uuid.pop(obj.definition.uuid, None)

    def find_by_name(self, name: str) -> Optional[DomainObj]:
        with self._lock:
            return self._by_name.get(name)

    def find_by_uuid(self, uuid: str) -> Optional[DomainObj]:
        with self._lock:
            return self._by_uuid.get(uuid)

    def find_by_id(self, domain_id: int) -> Optional[DomainObj]:
        with self._lock:
            for obj in self._by_name.values():
                if obj.definition.id == domain_id:
                    return obj
            return None

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._by_name)

    def objects(self) -> List[DomainObj]:
        with self._lock:
            return [self._by_name[n] for n in sorted(self._by_name)]

    def count(self, active: Optional[bool] = None) -> int:
        with self._lock:
            if active is None:
                return len(self._by_name)
            return sum(1 for o in self._by_name.values() if o.is_active() == active)

    def clear(self) -> None:
        with self._lock:
            self._by_name.clear()
            self._by_uuid.clear()

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._by_name
