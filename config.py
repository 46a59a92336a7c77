# config.py
import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    # 与后端签发 token 用的是同一个密钥，门户只做校验、不签发
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt")
    JSON_AS_ASCII = False

    # 留学后端 REST 地址（末尾不带 /）
    PORTAL_API_BASE_URL = os.getenv("PORTAL_API_BASE_URL", "http://localhost:5000/api/v1")
    PORTAL_API_TIMEOUT = float(os.getenv("PORTAL_API_TIMEOUT", "10"))

    # 逗号分隔
    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8848,http://127.0.0.1:8848",
        ).split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    PORTAL_API_BASE_URL = "http://backend.test/api/v1"
