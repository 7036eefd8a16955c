# sportcenter/repositories/promotion_repository.py
"""
Promotion Repository

Promotion lookups (by id with a row lock, by code, active usage bonuses) and
the PromotionApplication history.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import PromotionStatus, PromotionType
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.promotion import Promotion, PromotionApplication
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PromotionRepository(BaseRepository[Promotion]):
    def __init__(self, db: Session):
        super().__init__(db, Promotion)
        self.logger = logging.getLogger(__name__)

    def get_by_code(self, code: str) -> Optional[Promotion]:
        """Case-insensitive code lookup."""
        try:
            return cast(
                Optional[Promotion],
                self.db.query(Promotion)
                .filter(func.upper(Promotion.code) == code.strip().upper())
                .first(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to get promotion by code: %s", str(exc))
            raise RepositoryException("Failed to get promotion by code") from exc

    def list_active_of_type(self, promotion_type: PromotionType, now: datetime) -> List[Promotion]:
        """Active promotions of a type valid at ``now``, oldest first."""
        now = ensure_utc(now)
        try:
            return cast(
                List[Promotion],
                self.db.query(Promotion)
                .filter(
                    Promotion.type == promotion_type,
                    Promotion.status == PromotionStatus.ACTIVE,
                    Promotion.valid_from <= now,
                    or_(Promotion.valid_to.is_(None), Promotion.valid_to >= now),
                )
                .order_by(Promotion.created_at.asc(), Promotion.id.asc())
                .all(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list active promotions: %s", str(exc))
            raise RepositoryException("Failed to list active promotions") from exc


class PromotionApplicationRepository(BaseRepository[PromotionApplication]):
    def __init__(self, db: Session):
        super().__init__(db, PromotionApplication)
        self.logger = logging.getLogger(__name__)

    def exists_for_user(self, promotion_id: str, user_id: str) -> bool:
        return self.exists(promotion_id=promotion_id, user_id=user_id)

    def list_for_user(self, user_id: str, limit: int = 100) -> List[PromotionApplication]:
        try:
            return cast(
                List[PromotionApplication],
                self.db.query(PromotionApplication)
                .options(joinedload(PromotionApplication.promotion))
                .filter(PromotionApplication.user_id == user_id)
                .order_by(PromotionApplication.created_at.desc(), PromotionApplication.id.desc())
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list promotion applications: %s", str(exc))
            raise RepositoryException("Failed to list promotion applications") from exc
