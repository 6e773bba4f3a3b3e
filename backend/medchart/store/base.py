"""
BaseDocumentStore：远程文档存储的抽象基类。

存储只支持整文档读取 / 整文档覆盖写（last writer wins）。
Coordinator 完全不知道背后是哪种存储；每种新存储只需：
1. 继承 BaseDocumentStore
2. 实现 load() 和 save()
3. 在 factory.py 的 _build_registry 注册一行
"""

from abc import ABC, abstractmethod


class BaseDocumentStore(ABC):

    @abstractmethod
    async def load(self, patient_id: str) -> dict | None:
        """读取患者文档；不存在时返回 None。"""

    @abstractmethod
    async def save(self, patient_id: str, document: dict) -> None:
        """
        整文档覆盖写。

        Raises:
            PersistenceError: 写入失败，由 SaveQueue 记录到 SaveTask 上
        """
