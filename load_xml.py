"""CLI shim -- delegates to xmlloader.cli.main().

Usage:
    python load_xml.py --files ./feeds
    python load_xml.py --lines ./exports/records.xml --url mongodb://localhost:27017/db.test
"""

from xmlloader.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
