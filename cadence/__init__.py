"""
Cadence — XP, Level Roles & Reminders for Discord
===================================================
Awards XP for chat activity, derives a level from it, keeps a tiered
level role in sync, and delivers user-scheduled reminders.

Package layout::

    cadence/
    ├── config.py          # YAML + .env → typed Python config
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # user_xp, reminders
    ├── engine/
    │   ├── progression.py # requirement() / apply() / xp_to_next()
    │   ├── tiers.py       # Role tier table + role-change planner
    │   ├── time_parser.py # "10 minutes" → absolute UTC timestamp
    │   └── replies.py     # Thanks auto-reply
    ├── services/
    │   ├── progress_store.py     # Best-effort load/save/top of user_xp
    │   ├── activity_service.py   # load → renormalize → apply → save
    │   ├── role_sync.py          # Best-effort tier role convergence
    │   ├── reminder_service.py   # Reminder persistence
    │   ├── reminder_scheduler.py # Long-lived delivery loop
    │   ├── notifications.py      # Level-up + reminder delivery
    │   └── embeds.py             # Embed builders for commands
    └── bot/
        ├── core.py        # Bot subclass, cog loader, scheduler lifecycle
        └── cogs/
            ├── social.py    # on_message XP pipeline + thanks reply
            ├── meta.py      # ping, top, mystats, help
            └── reminders.py # remindme
"""

__version__ = "0.1.0"
