# extensions.py
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from services.portal_api import PortalApi

jwt = JWTManager()
cors = CORS()
portal_api = PortalApi()
