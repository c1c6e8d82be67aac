# -*- coding: utf-8 -*-
"""
organization.py
--------------------------------------------------------------------
组织：数据隔离的最外层边界。
- 用户、项目都直接挂在组织下；模块、子模块、用例、执行记录
  通过上级链路间接归属组织。
- 任何查询都不允许返回调用者组织以外的实体。
"""

from extensions.database import db
from .mixins import TimestampMixin, COMMON_TABLE_ARGS


class Organization(TimestampMixin, db.Model):
    __tablename__ = "organization"
    __table_args__ = (COMMON_TABLE_ARGS,)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    domain = db.Column(db.String(128))

    users = db.relationship(
        "User", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )
    projects = db.relationship(
        "Project", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
        }
