"""
Output storage backed by Crawlee storages.

DatasetSink receives one JSON record per place, KeyValueBlobStore holds the
downloaded photo bytes.
"""

import logging
from typing import Optional, Protocol

from crawlee.storages import Dataset, KeyValueStore

from .base import PlaceRecord

logger = logging.getLogger(__name__)


class Sink(Protocol):
    async def append(self, record: PlaceRecord) -> None:
        ...


class BlobStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        ...


class DatasetSink:
    """Append-only dataset of place records."""

    def __init__(self, dataset: Dataset):
        self.dataset = dataset

    @classmethod
    async def open(cls, name: Optional[str] = None) -> 'DatasetSink':
        return cls(await Dataset.open(name=name))

    async def append(self, record: PlaceRecord) -> None:
        await self.dataset.push_data(record.to_dict())


class KeyValueBlobStore:
    """Binary blobs keyed by string, e.g. photo-<placeId>-<index>."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @classmethod
    async def open(cls, name: Optional[str] = None) -> 'KeyValueBlobStore':
        return cls(await KeyValueStore.open(name=name))

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        logger.debug(f"Storing {key} ({len(data)} bytes, {content_type})")
        await self.store.set_value(key, data, content_type=content_type)
