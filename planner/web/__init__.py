"""FastAPI adapter: app, middleware, routers and the service wiring."""
