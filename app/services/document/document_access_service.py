"""
Document Access Service - decides whether a caller may read a document.

A caller is allowed when they are a member of the document's team, or when
they present the id of a share link that belongs to the document. The check
fails closed: unknown documents and lookup errors deny access.
"""

from typing import Optional

from sqlalchemy import select

from app.models.db import DocumentModel, LinkModel, UserTeamModel
from .document_base_service import DocumentBaseService


class DocumentAccessService(DocumentBaseService):
    """Access gate for document reads."""

    async def check_document_access(
        self,
        document_id: str,
        user_id: Optional[str] = None,
        link_id: Optional[str] = None,
    ) -> bool:
        """
        Check if a user (or share-link holder) may read a document.

        Args:
            document_id: Document to read
            user_id: Authenticated caller, if any
            link_id: Share link presented by the caller, if any

        Returns:
            True when the caller is a team member or holds a link to the
            document, False otherwise (including on any lookup error)
        """
        try:
            async with self.db.session() as session:
                team_id = await session.scalar(
                    select(DocumentModel.team_id).where(DocumentModel.id == document_id)
                )
                if team_id is None:
                    self.logger.info("Access check on missing document", document_id=document_id)
                    return False

                if user_id:
                    member_ids = set(
                        (
                            await session.scalars(
                                select(UserTeamModel.user_id).where(
                                    UserTeamModel.team_id == team_id
                                )
                            )
                        ).all()
                    )
                    if user_id in member_ids:
                        return True

                if link_id:
                    link_ids = set(
                        (
                            await session.scalars(
                                select(LinkModel.id).where(
                                    LinkModel.document_id == document_id
                                )
                            )
                        ).all()
                    )
                    if link_id in link_ids:
                        return True

            self.logger.info(
                "Document access denied",
                document_id=document_id,
                user_id=user_id,
                has_link=bool(link_id),
            )
            return False

        except Exception as e:
            self.logger.error(
                "Document access check failed",
                document_id=document_id,
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
            return False
