"""
工厂函数：根据 settings.MEDCHART_DOCUMENT_STORE 返回对应的存储实例。

换存储只需改环境变量 MEDCHART_DOCUMENT_STORE，代码零改动。
"""

from django.conf import settings

from .base import BaseDocumentStore


def _build_registry() -> dict[str, type[BaseDocumentStore]]:
    from .stores import CeleryDocumentStore, DjangoDocumentStore, InMemoryDocumentStore

    return {
        'memory': InMemoryDocumentStore,
        'django': DjangoDocumentStore,
        'celery': CeleryDocumentStore,
    }


def get_document_store() -> BaseDocumentStore:
    """
    Raises:
        ValueError: MEDCHART_DOCUMENT_STORE 未知
    """
    name = getattr(settings, 'MEDCHART_DOCUMENT_STORE', 'django')
    registry = _build_registry()
    store_cls = registry.get(name)

    if store_cls is None:
        raise ValueError(
            f"Unknown MEDCHART_DOCUMENT_STORE: {name!r}. "
            f"Known stores: {list(registry.keys())}"
        )

    return store_cls()
