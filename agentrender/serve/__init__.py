"""HTTP surface for agentrender.

- **app**: FastAPI app and lifespan (logging, agent loading, graceful drain)
- **agents**: ``module:Class`` loading into ``NodeInvoker``s
- **deps**: dependency injection aliases
- **routers**: ``POST /api/invoke``, ``GET /api/sessions/{id}/stream``
"""
