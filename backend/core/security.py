"""
OAuth2 bearer scheme shared across the app.
Tokens are issued by the external auth service; this API only verifies them.
"""
from fastapi.security import OAuth2PasswordBearer

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=True)
