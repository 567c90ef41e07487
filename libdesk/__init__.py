"""Seat, membership and fee desk for self-study libraries."""

__version__ = '0.1.0'
__all__ = ['app', '__version__']


def __getattr__(name: str):
    # Importing the FastAPI app builds the engine, so defer it until asked for.
    if name != 'app':
        raise AttributeError(name)
    from libdesk.main import app

    return app
