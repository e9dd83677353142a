#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from assessment_engine.db.base import Base  # noqa: E402
from assessment_engine.db.session import engine  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description='Drop and recreate every engine table in the development database.')
    parser.add_argument('--yes', action='store_true', help='Required to execute destructive reset.')
    args = parser.parse_args()

    if not args.yes:
        raise SystemExit('Refusing to reset database. Re-run with --yes to confirm destructive action.')

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    print('Development database reset completed.')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
