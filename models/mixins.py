from sqlalchemy import func, DateTime
from extensions.database import db
from utils.datetime_helpers import utcnow

COMMON_TABLE_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class TimestampMixin:
    created_at = db.Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = db.Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now(), index=True)


class RetireMixin:
    """
    退役混入类：
    记录仍然保留（含历史结果），只是从可见列表中隐藏。
    取消模块分配时退役，重新分配时恢复。
    """
    retired = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default="0",
        index=True,
        comment="是否已退役"
    )
    retired_at = db.Column(
        DateTime,
        comment="退役时间"
    )

    def retire(self):
        self.retired = True
        self.retired_at = utcnow()

    def restore(self):
        """恢复退役的记录"""
        self.retired = False
        self.retired_at = None
