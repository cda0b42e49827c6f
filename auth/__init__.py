"""
auth — User authentication module.

Provides:
  • JWT session token creation & verification (HS256, one hour)
  • Password hashing (bcrypt)
  • Register / Login service
  • ``get_current_identity`` FastAPI dependency
"""
