"""DevOps Maturity Assessment service.

Scores a team's DevOps maturity through a sectioned questionnaire and gates
access to assessments and results through team- and group-scoped roles.
"""

__version__ = "0.1.0"
