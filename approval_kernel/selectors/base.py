"""
approval_kernel.selectors.base -- Read side of the approval store.

The workflow service is the only writer of request status.  Selectors
take the caller's Session, run queries, and return frozen DTOs; they
never add, delete, flush or commit.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from approval_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(Generic[ModelType]):
    def __init__(self, session: Session):
        self.session = session
