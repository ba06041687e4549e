"""
Google Drive knowledge store.

Knowledge documents are Google Docs, exported as plain text. A folder
reference loads every Doc in the folder (ordered by name, capped).
"""

import logging

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from inbox_triage.config import settings
from inbox_triage.gmail.auth import get_drive_service
from inbox_triage.knowledge.bundle import KnowledgeBundle

logger = logging.getLogger(__name__)

GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"


class DriveKnowledgeStore:
    """Fetches knowledge documents from Google Drive."""

    def __init__(
        self,
        drive_service: Resource | None = None,
        capacity_tokens: int | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            drive_service: Drive API service. If None, will be auto-created.
            capacity_tokens: Model context size used for utilization metadata.
        """
        self._service = drive_service
        self.capacity_tokens = capacity_tokens or settings.model_context_tokens

    @property
    def service(self) -> Resource:
        """Get Drive service, creating if needed."""
        if self._service is None:
            self._service = get_drive_service()
        return self._service

    def fetch_document(self, ref: str) -> KnowledgeBundle:
        """Export one Google Doc as a knowledge bundle."""
        name = self._file_name(ref)
        text = self._export_text(ref)
        logger.debug(f"Fetched knowledge document '{name}' ({len(text)} chars)")
        return KnowledgeBundle.from_documents([(name, text)], self.capacity_tokens)

    def fetch_folder(self, ref: str, max_docs: int) -> KnowledgeBundle:
        """Export up to ``max_docs`` Google Docs from a folder."""
        try:
            response = (
                self.service.files()
                .list(
                    q=(
                        f"'{ref}' in parents and mimeType='{GOOGLE_DOC_MIME_TYPE}' "
                        "and trashed=false"
                    ),
                    orderBy="name",
                    pageSize=max_docs,
                    fields="files(id, name)",
                )
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to list knowledge folder {ref}: {e}")
            raise

        files = response.get("files", [])[:max_docs]
        documents = [(f["name"], self._export_text(f["id"])) for f in files]
        logger.debug(f"Fetched {len(documents)} document(s) from knowledge folder {ref}")
        return KnowledgeBundle.from_documents(documents, self.capacity_tokens)

    def _file_name(self, file_id: str) -> str:
        try:
            meta = self.service.files().get(fileId=file_id, fields="id, name").execute()
            return meta.get("name", file_id)
        except HttpError as e:
            logger.error(f"Failed to read metadata for knowledge document {file_id}: {e}")
            raise

    def _export_text(self, file_id: str) -> str:
        try:
            data = (
                self.service.files()
                .export(fileId=file_id, mimeType="text/plain")
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to export knowledge document {file_id}: {e}")
            raise

        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return str(data)
