"""Build and port forum products from declarative project trees.

This package exposes the CLI entry points used by ``forge`` to assemble a
project into a product XML document, stage its shipped files, emit checksum
manifests and port exported products back into project trees.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from product_forge import main
>>> main()  # doctest: +SKIP
>>> from product_forge import app
>>> app(["build", "--project", "projects/demo"])  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
