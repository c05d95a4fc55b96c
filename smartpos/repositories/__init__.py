"""Schema-scoped data access. Every function takes the executor and the
tenant schema resolved by the auth dependency (``None`` for shared tables)."""
