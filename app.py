# app.py
import logging

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import Config
from extensions import cors, jwt, portal_api
from services.portal_api import ApiError

# ---- 导入各个蓝图 ----
from routes.application import application_bp
from routes.calendar import calendar_bp
from routes.dashboard import dashboard_bp
from routes.offers import offers_bp
from routes.profile import profile_bp
from routes.universities import universities_bp

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ---- 初始化扩展 ----
    jwt.init_app(app)
    portal_api.init_app(app)

    # ---- CORS ----
    cors.init_app(
        app,
        resources={
            r"/api/*": {
                "origins": app.config.get("CORS_ORIGINS", []),
                "supports_credentials": True,
                "allow_headers": ["Content-Type", "Authorization"],
                "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            }
        },
    )

    # ---- 注册蓝图 ----
    app.register_blueprint(application_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(offers_bp)
    app.register_blueprint(universities_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(profile_bp)

    # ---- 错误处理：后端错误原样透传状态码和文案 ----
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return jsonify({"code": e.status_code, "message": e.message}), e.status_code

    # ---- 健康检查 ----
    @app.get("/")
    def health():
        return jsonify({"status": "ok"})

    logger.info("✅ portal app created")
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8000, debug=True)
