from .base import BaseDocumentStore
from .factory import get_document_store
from .stores import CeleryDocumentStore, DjangoDocumentStore, InMemoryDocumentStore

__all__ = [
    'BaseDocumentStore',
    'CeleryDocumentStore',
    'DjangoDocumentStore',
    'InMemoryDocumentStore',
    'get_document_store',
]
