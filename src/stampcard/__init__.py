"""Offline-first loyalty progress ledger and sync engine.

Usage:
    from stampcard import create_app

    app = await create_app()
    result = await app.scanner.process("REWARD:coffee:Free Coffee:5:free_product:Latte")
    await app.sync()
    await app.aclose()
"""

__version__ = "0.1.0"


def __getattr__(name):
    if name in {"create_app", "StampcardApp"}:
        from stampcard import app

        return getattr(app, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["StampcardApp", "__version__", "create_app"]
