"""
Background workers.

The only worker is the optional expiry purger, which removes pastes that can
no longer be read. Reads never depend on it having run.
"""
