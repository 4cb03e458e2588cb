"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, CustomRemind, CommandResult)
- sqlite_base.py: shared SQLite connection/schema helpers
- task_store.py: tasks, overdue-reminder audit rows, recent-message ring
- coin_ledger.py: coin balance as append-only deltas
- remind_registry.py: user-defined recurring reminders + matching
- reminder_scheduler.py: live timers (overdue, break, no-schedule) and idle escalation
- cron_dispatcher.py: per-minute wall-clock triggers
- task_api.py: lifecycle commands used by the command front-end
"""
