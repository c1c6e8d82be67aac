# app.py
from flask import Flask
from sqlalchemy.exc import OperationalError, ProgrammingError
from config.settings import get_config
from extensions.database import db, migrate
from extensions.logger import init_logger
from controllers.auth_controller import auth_bp
from controllers.user_controller import user_bp
from controllers.project_controller import project_bp
from controllers.module_controller import module_bp
from controllers.test_case_controller import test_case_bp
from controllers.execution_controller import execution_bp
from services.user_service import UserService
from utils.response import biz_error_response, json_response
from utils.exceptions import BizError
import models  # noqa: F401  注册全部模型供 Flask-Migrate 检测


def create_app(config_name="development"):
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # 初始化扩展
    db.init_app(app)
    migrate.init_app(app, db)
    init_logger(app)
    app.logger.info("当前数据库 URI: %s", app.config["SQLALCHEMY_DATABASE_URI"])

    if app.config.get("BOOTSTRAP_ADMIN"):
        try:
            with app.app_context():
                # 确保默认组织与管理员
                UserService.ensure_default_admin(app)
        except (OperationalError, ProgrammingError) as e:
            # 首次启动时表还没创建，需要先执行 flask db upgrade
            app.logger.warning("表结构尚未创建，跳过默认管理员初始化: %s", e)

    # 登录
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    # 组织内用户管理
    app.register_blueprint(user_bp, url_prefix="/api/users")
    # 项目与项目分配
    app.register_blueprint(project_bp)
    # 模块、子模块与模块分配
    app.register_blueprint(module_bp)
    # 用例
    app.register_blueprint(test_case_bp)
    # 执行记录与工作台
    app.register_blueprint(execution_bp)

    # 错误处理
    @app.errorhandler(404)
    def not_found(e):
        return json_response(message="接口不存在", code=404)

    @app.errorhandler(500)
    def server_error(e):
        return json_response(message="服务器内部错误", code=500)

    @app.errorhandler(BizError)
    def _biz_err(e: BizError):
        return biz_error_response(e)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=8888, debug=True)
