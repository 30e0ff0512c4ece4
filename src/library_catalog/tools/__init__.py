"""Library Catalog write endpoints.

Tools change state: catalog CRUD (role-gated) and circulation
(borrow/return, any authenticated caller).
"""

from .catalog import router as catalog_router
from .circulation import router as circulation_router

tool_routers = [circulation_router, catalog_router]

__all__ = ["catalog_router", "circulation_router", "tool_routers"]
