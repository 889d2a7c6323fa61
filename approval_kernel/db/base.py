"""
approval_kernel.db.base -- Declarative base for the ORM models.

Architecture position:
    Kernel > DB.  Imported by every model; imports nothing above db/.

Invariants enforced:
    - Every table gets a surrogate ``id`` (uuid4, stored as String(36)).
      Business identifiers such as ``request_id`` are separate columns.
    - Annotated ``datetime`` columns are UTCDateTime, so naive values are
      refused at bind time.
"""

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from approval_kernel.db.types import UTCDateTime, UUIDString


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        UUID: UUIDString(),
        dict[str, Any]: JSON,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
