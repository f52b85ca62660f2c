"""
Club Modules.

Thin orchestration layers over the club kernel.  Each module contains:
- Domain models (the nouns, frozen dataclasses)
- ORM models (persistence)
- Workflows (state machines)
- A service that owns the transaction boundary

Modules:
- members: member status lifecycle
- activities: activity budgets and the budget approval workflow
- expenses: expense ledger reconciled against activity budgets
- payments: offline payment confirmations
- dues: dues cycles, per-member dues and dues automation
"""
