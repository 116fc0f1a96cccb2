"""
signet_sdk.keychain
-------------------
In-memory GUID -> KeySet store held by an Agent.

Holding a KeySet for a GUID is what lets an agent sign for that entity;
replacing or removing it drops that capability immediately. There is no
persistence: a keychain lost with its process cannot be recovered.
"""

from __future__ import annotations
import threading
from typing import Dict, List, Optional

from .keys import KeySet


class KeyChain:
    def __init__(self):
        self._keys: Dict[str, KeySet] = {}
        self._lock = threading.Lock()

    def upsert(self, guid: str, key_set: KeySet) -> None:
        with self._lock:
            self._keys[guid] = key_set

    def get(self, guid: str) -> Optional[KeySet]:
        with self._lock:
            return self._keys.get(guid)

    def remove(self, guid: str) -> Optional[KeySet]:
        with self._lock:
            return self._keys.pop(guid, None)

    def guids(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    def __contains__(self, guid: str) -> bool:
        with self._lock:
            return guid in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
