"""False-Event Detector — is a recorded PQ event a real disturbance?

Modules
───────
  patterns  — typical duration / magnitude envelope per event type
  heuristics — seven independent scores: Event → HeuristicScore
  scoring   — weighted combination → confidence and recommended action
  rules     — user-authored threshold rules and their accuracy analytics
"""
