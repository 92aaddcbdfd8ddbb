"""
FastAPI Task Manager backend package.

The ASGI application lives in task_api.main (uvicorn task_api.main:app); it is not
imported here so that task_api.client can be used without configuring the server.
"""

__version__ = "0.1.0"
