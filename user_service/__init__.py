"""User Service: layered user-management backend (registration, login, profiles, admin)."""

__version__ = "0.1.0"
