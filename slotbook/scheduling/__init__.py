"""
Scheduling core

Pure, store-agnostic booking logic:
- Interval arithmetic (interval.py)
- Weekly rule resolution to UTC windows (rules.py)
- Conflict aggregation and buffer semantics (conflicts.py)
- Slot generation (slots.py)
"""
