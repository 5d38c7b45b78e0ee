"""
semkat_access.policy

Row-level authorization package.

Responsibilities:
- Declarative policy rules and their evaluator.
- The trusted role read path used by role predicates.
- A policy-checked data access facade over the repositories.
"""

# Package marker.
