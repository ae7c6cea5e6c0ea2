"""
Run the CLI via ``python -m ledger_demo``.

Exit Codes
----------
- 0: The run completed (partial failures are reported in the summary)
- 1: Configuration error
"""

from __future__ import annotations

from ledger_demo.cli import app

if __name__ == "__main__":
    app(prog_name="ledger-demo")
