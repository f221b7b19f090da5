from sqlalchemy import Column, ForeignKey, String

from app.core.db import Base
from app.models.base import BigIntId


class Invite(Base):
    """邀请链接。不记录是否已使用，也不绑定具体玩家，可被多人多次兑换。"""
    __tablename__ = "invites"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    instructor_id = Column(BigIntId, ForeignKey("instructors.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(BigIntId, ForeignKey("games.id", ondelete="CASCADE"), nullable=True)
    group_id = Column(BigIntId, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True)
