# Locus: memory palace task board
#
# Components:
#   schema.py      - Data model (TaskRecord, Room, Status, Priority)
#   scanner.py     - Markdown marker scanner (TODO:, FOLLOW-UP:, ...)
#   categorizer.py - Keyword-based room inference
#   github_sync.py - GitHub Issues <-> TaskRecord mapping and status push
#   auth.py        - OAuth code-for-token exchange client
#   store.py       - Board state: filter, columns, status moves with rollback
#   storage.py     - SQLite persistence for the local board
#   events.py      - Event bridge between the store and whatever renders it
#   summary.py     - Plain-text board summaries
#   watch.py       - Re-scan on markdown changes
#   config.py      - YAML/env configuration
#   cli.py         - `locus` command line entry point

__version__ = "0.3.0"
