"""
Adapters implementing the profit kernel ports.

    memory            -- in-memory, thread-safe (tests, embedded use)
    sqlalchemy_store  -- SQLAlchemy session backed (production)
"""
