"""ORM Models — SQLAlchemy declarative models for the document and intent tables.

Invariants:
    - All models inherit from Base (db/base.py)
    - Posts and intents are independent tables (no foreign keys: an intent
      outlives the post it describes)

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
"""

from timeline.models.post import PostDocument  # noqa: F401
from timeline.models.mutation_intent import MutationIntentRecord  # noqa: F401
