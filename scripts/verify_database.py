#!/usr/bin/env python3
"""
Verify the chat database: tables exist and hold the expected record kinds.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.db.session import Database
from app.models import Conversation, Message, ShopSession, StoreSettings

TABLES = {
    "Sessions": ShopSession,
    "Conversations": Conversation,
    "Messages": Message,
    "Store Settings": StoreSettings,
}


def log(message, status='info'):
    """Log message with timestamp"""
    timestamp = datetime.now().strftime('%H:%M:%S')
    status_icon = {
        'pass': '✅',
        'fail': '❌',
        'info': 'ℹ️',
    }.get(status, '🔍')
    print(f"{status_icon} [{timestamp}] {message}")


def count_records(database: Database) -> Dict[str, int]:
    counts = {}
    with database.session() as db:
        for label, model in TABLES.items():
            counts[label] = db.execute(select(func.count()).select_from(model)).scalar_one()
            log(f"{model.__tablename__} table exists", 'pass')
    return counts


def main(database_url: Optional[str] = None) -> int:
    url = database_url or settings.DATABASE_URL
    log(f"Verifying database tables at {url.split('@')[-1]}...")
    database = Database(url)
    try:
        database.create_all()
        counts = count_records(database)
    except SQLAlchemyError as e:
        log(f"Error verifying database: {e}", 'fail')
        return 1
    finally:
        database.dispose()

    print("\n📊 Table counts:")
    for label, count in counts.items():
        print(f"   {label}: {count}")
    log("All tables verified successfully!", 'pass')
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
