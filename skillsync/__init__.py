"""SkillSync — freelance marketplace backend.

Clients post projects, freelancers bid, clients move candidates through the
evaluation pipeline (view → shortlist → interview → hire/reject), both sides
message and review each other, administrators moderate the platform.
"""

__version__ = "0.1.0"
