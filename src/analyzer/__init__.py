"""PQ Analyzer — batch run of the correlation and false-event core.

Modules
───────
  pipeline — load events, apply rules, score, group, write outputs
  reporter — write CSV and TXT outputs
  cli      — argparse entry-point
"""
