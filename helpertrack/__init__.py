"""
helpertrack — Progress & Achievement Tracking for Forum Helpers
================================================================
Records what members of a forum moderation team do (complaints handled,
checks timed, tools used), keeps a per-user progress document, and awards
badges when activity crosses a threshold.  Every mutation of a progress
document goes through one locked read-modify-write transaction so that no
badge is granted twice and no concurrent update is lost.

Package layout::

    helpertrack/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Time units, log bound, presence window
    ├── errors.py          # NotFound / InvalidArgument / Conflict / …
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + schema init
    │   └── models.py      # users table (JSON progress column)
    ├── engine/
    │   ├── catalog.py     # Static achievement catalog
    │   ├── progress.py    # Progress document defaults + derived values
    │   ├── events.py      # ProgressEvent envelope + payload validation
    │   ├── achievements.py # Pure evaluator (event → new document + grants)
    │   ├── merge.py       # Bulk sync merge policy
    │   └── leaderboard.py # Pure 7/30-day complaint ranking
    ├── services/
    │   ├── store.py           # Locked load/save/merge over SQLAlchemy
    │   ├── progress_service.py # Update transaction, sync, reads
    │   ├── user_service.py    # Registration + directory
    │   ├── presence_service.py # Heartbeat + online status
    │   └── leaderboard_service.py
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine / config dependencies
        └── routes/        # Progress, users + public REST endpoints
"""

__version__ = "0.1.0"
