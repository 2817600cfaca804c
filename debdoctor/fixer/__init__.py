"""
Fix subsystem for debdoctor.

Modules:
  models.py    — RiskLevel, Fix, and the shared COMMON_FIXES catalogue.
  validator.py — static pre-execution checks (structure + denylist).
  executor.py  — FixExecutor state machine: permission check, confirmation,
                 ordered execution, rollback on partial failure.
  runner.py    — fix session over a Diagnosis: pick, confirm, run, summarise.
"""
