"""Formation API entry point for uvicorn."""

import uvicorn

from formation_api.app_factory import create_app

# The global 'app' is what uvicorn looks for
app = create_app()


def main() -> None:
    """Run the application using uvicorn when executed directly."""
    context = app.state.context

    uvicorn.run(
        "formation_api.main:app",
        host="0.0.0.0",
        port=context.api_port,
        reload=not context.production_mode,
        log_level="info",
    )


if __name__ == "__main__":
    main()
