# -*- coding: utf-8 -*-
"""
database.py
--------------------------------------------------------------------
数据库扩展：
- db: Flask-SQLAlchemy 实例，所有模型与仓储共用。
- migrate: Flask-Migrate 实例，负责表结构迁移。
- atomic(name): 具名事务边界。写操作与其触发的执行记录同步
  必须落在同一个 atomic 块内，任一环节失败整体回滚。
说明：
- SQLite 默认不校验外键，连接建立时打开 PRAGMA foreign_keys，
  保证级联删除在测试库与生产库行为一致。
"""

import logging
from contextlib import contextmanager

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

db = SQLAlchemy()
migrate = Migrate()


@event.listens_for(Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@contextmanager
def atomic(name: str):
    """
    具名事务：
        with atomic("module.assign"):
            ...写入 + 同步...
    正常退出时 commit；抛出任何异常时 rollback 并原样向上抛出。
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.warning("transaction %s rolled back", name, exc_info=True)
        raise
    logger.debug("transaction %s committed", name)
