"""Named vector collections."""

from docembed.collection.collection import Collection
from docembed.collection.schemas import CollectionEntry, CollectionInfo, SearchResult

__all__ = ["Collection", "CollectionEntry", "CollectionInfo", "SearchResult"]
