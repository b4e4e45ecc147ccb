# =============================================================================
# essayvec/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command-line entry points for operators and developers:
#
#   ingest.py: `ingest` runs the whole pipeline for one publication and
#              prints the run summary; `scrape` stops before embedding and
#              writes a JSON snapshot and optional markdown files.
#
# argparse is used for argument parsing.  Provider imports are deferred
# inside the factory functions so `--help` stays fast.
# =============================================================================

"""CLI tools for essayvec.

- ``python -m essayvec.cli ingest --url URL``: ingest a publication.
- ``python -m essayvec.cli scrape --url URL``: scrape without embedding.
"""
