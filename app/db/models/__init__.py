from app.db.models.mutation import MutationLog

__all__ = ["MutationLog"]
