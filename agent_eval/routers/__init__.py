"""API routers."""

from agent_eval.routers.export_import import router as export_import_router

__all__ = ["export_import_router"]
