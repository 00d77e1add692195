"""Repo entrypoint.

Keep this file tiny so `python main.py marionette` works, while the real
implementation lives in the `vmc` package.
"""

from vmc.main import main


if __name__ == "__main__":
    raise SystemExit(main())
