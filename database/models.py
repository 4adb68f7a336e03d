# database/models.py
"""
这里定义所有数据库表的ORM模型。

- Profile          账号 / 角色 / 国家
- Shop             各国家直播店铺
- ScheduleEntry    店铺 x 日期 x 小时 的排班格子
- Product          多语言商品目录（sku 唯一）
- Feedback         达人反馈 + 管理员回复
- LiveHubContent   政策 / 活动 / 教程 / 公告
- ActivityLog      操作日志
"""
import uuid

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Boolean, ForeignKey, Date, JSON, UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from database.db import Base, now_utc


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    username = Column(String(128))          # 展示名，排班格子里缓存的就是它
    role = Column(String(16), nullable=False, default="creator")  # admin / creator
    country = Column(String(8))
    last_login = Column(DateTime(timezone=True))
    last_ip = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Shop(Base):
    __tablename__ = "shops"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    country = Column(String(8), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    # 删店铺时先删排班
    schedules = relationship(
        "ScheduleEntry",
        back_populates="shop",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ScheduleEntry(Base):
    __tablename__ = "live_schedules"
    __table_args__ = (
        UniqueConstraint("shop_id", "date", "hour_slot", name="uq_schedule_cell"),
        CheckConstraint("hour_slot >= 0 AND hour_slot <= 23", name="ck_schedule_hour"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    shop_id = Column(String(36), ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    hour_slot = Column(Integer, nullable=False)
    country = Column(String(8))
    shop_name = Column(String(255))         # 冗余缓存
    anchor_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"))
    anchor_name = Column(String(128))       # 冗余缓存
    fans_added = Column(Integer)            # None 表示还没汇报
    mood = Column(Text)                     # 主播备注
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    shop = relationship("Shop", back_populates="schedules")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(String(128), unique=True, nullable=False, index=True)
    # TranslationSet: {"CN": ..., "EN": ..., "VN": ..., "TH": ..., "PH": ..., "MY": ...}
    name = Column(JSON, nullable=False, default=dict)
    size = Column(JSON, nullable=False, default=dict)
    features = Column(JSON, nullable=False, default=dict)
    main_image = Column(Text, default="")
    pattern_images = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Feedback(Base):
    __tablename__ = "feedbacks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), index=True)
    country = Column(String(8), index=True)
    category = Column(String(32), nullable=False)  # sample / live_issue / after_sales / other
    content = Column(Text, nullable=False)
    images = Column(JSON, nullable=False, default=list)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"))
    is_anonymous = Column(Boolean, nullable=False, default=False)
    reply = Column(Text)
    logistics_info = Column(Text)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    replied_at = Column(DateTime(timezone=True))

    author = relationship("Profile", lazy="joined")
    product = relationship("Product", lazy="joined")


class LiveHubContent(Base):
    __tablename__ = "live_hub"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(16), nullable=False, index=True)  # policy / activity / tutorial / notice
    data = Column(JSON, nullable=False, default=dict)
    created_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=now_utc)


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), index=True)
    user_email = Column(String(255))
    action_type = Column(String(64), nullable=False, index=True)
    description = Column(Text)
    # "metadata" 是 Declarative 保留属性名
    extra = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=now_utc)
