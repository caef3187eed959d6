"""
Document CRUD Service - create, read, update and delete document records.

Documents are created after their file has been stored; the stored-file
reference and its storage tag are always written together.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select

from app.core.storage_client import StorageBackend
from app.models.db import DocumentModel, LinkModel
from app.models.document import Document, DocumentStorageType
from .document_base_service import DocumentBaseService, DocumentNotFoundError


class DocumentCrudService(DocumentBaseService):
    """Service for document record lifecycle."""

    async def get_document(self, document_id: str) -> Optional[Document]:
        """Get a document by id, or None when it does not exist."""
        async with self.db.session() as session:
            doc_model = await session.scalar(
                select(DocumentModel).where(DocumentModel.id == document_id)
            )
            if doc_model is None:
                return None
            return self._to_document(doc_model)

    async def create_document(
        self,
        team_id: str,
        name: str,
        file: str,
        storage_type: DocumentStorageType,
        document_type: Optional[str] = None,
        num_pages: Optional[int] = None,
    ) -> Document:
        """
        Create a document record pointing at an already stored file.

        Args:
            team_id: Owning team
            name: Display name, used as the download filename
            file: CDN URL or object key
            storage_type: Tag matching the kind of reference in `file`
            document_type: Declared type, e.g. "pdf"
            num_pages: Page count, when known
        """
        async with self.db.session() as session:
            doc_model = DocumentModel(
                team_id=team_id,
                name=name,
                file=file,
                storage_type=DocumentStorageType(storage_type),
                type=document_type,
                num_pages=num_pages,
            )
            session.add(doc_model)
            await session.flush()
            document = self._to_document(doc_model)

        self.logger.info(
            "Document created",
            document_id=document.id,
            team_id=team_id,
            storage_type=document.storage_type.value,
        )
        return document

    async def update_stored_file(
        self, document_id: str, file: str, storage_type: DocumentStorageType
    ) -> Document:
        """Point a document at a new stored file."""
        async with self.db.session() as session:
            doc_model = await session.scalar(
                select(DocumentModel).where(DocumentModel.id == document_id)
            )
            if doc_model is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")

            doc_model.file = file
            doc_model.storage_type = DocumentStorageType(storage_type)
            doc_model.updated_at = datetime.now(timezone.utc)
            await session.flush()
            document = self._to_document(doc_model)

        self.logger.info("Document file updated", document_id=document_id)
        return document

    async def delete_document(
        self, document_id: str, storage: Optional[StorageBackend] = None
    ) -> bool:
        """
        Delete a document record.

        When a storage backend is given and the document holds an object key,
        the stored object is removed as well.
        """
        async with self.db.session() as session:
            doc_model = await session.scalar(
                select(DocumentModel).where(DocumentModel.id == document_id)
            )
            if doc_model is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")

            file_ref = doc_model.file
            storage_type = doc_model.storage_type
            await session.execute(
                delete(LinkModel).where(LinkModel.document_id == document_id)
            )
            await session.execute(
                delete(DocumentModel).where(DocumentModel.id == document_id)
            )

        if storage is not None and storage_type is DocumentStorageType.OBJECT_STORE_KEY:
            await storage.delete(file_ref)

        self.logger.info("Document deleted", document_id=document_id)
        return True

    async def create_link(self, document_id: str) -> str:
        """Create a share link for a document and return its id."""
        async with self.db.session() as session:
            link = LinkModel(document_id=document_id)
            session.add(link)
            await session.flush()
            link_id = link.id

        self.logger.info("Share link created", document_id=document_id, link_id=link_id)
        return link_id
