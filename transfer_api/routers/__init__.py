from transfer_api.routers import banks, notifications, roles, transfers, users

__all__ = ["banks", "notifications", "roles", "transfers", "users"]
