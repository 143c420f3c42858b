"""Authentication and authorization.

Learn: Three pieces, used together on every protected route:
1. TokenService → issues and verifies signed bearer tokens (JWT)
2. get_current_user → Authorization header → CurrentIdentity, or 401
3. get_owned / ensure_owner → resource owner must equal the identity, or 403

Password hashing (bcrypt) lives in auth.password.
"""
