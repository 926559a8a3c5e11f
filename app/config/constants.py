"""
Application constants.

Centralized constants for the matrix engine.
"""

from decimal import Decimal

# ========================================================================
# MATRIX SHAPE
# ========================================================================

# Commission-eligible levels are tracked per node as level_1..level_10 counters
MAX_MATRIX_DEPTH = 10
MIN_MATRIX_WIDTH = 1
MAX_MATRIX_WIDTH = 20

# Spillover search below the sponsor's position (direct downline is level 1)
SPILLOVER_SCAN_LEVELS = 9

# Sponsor lookup walks this many sponsors up the member chain
SPONSOR_LOOKUP_DEPTH = 5

# ========================================================================
# QUEUE DRAIN
# ========================================================================

DEFAULT_DRAIN_JOB_NAME = "matrix_queue_drain"
DEFAULT_DRAIN_BATCH_LIMIT = 24
DEFAULT_DRAIN_INTERVAL_SECONDS = 120
DEFAULT_DRAIN_LOCK_STALE_MINUTES = 30

# Cross-matrix entries created on cycle are spaced this far apart
CROSS_MATRIX_ENTRY_SPACING_MINUTES = 3

# Stored error text is truncated to this length
MAX_ERROR_TEXT_LENGTH = 2000

# ========================================================================
# PAYOUTS
# ========================================================================

DEFAULT_HOUSE_USERNAME = "admin"

# Money values are stored as DECIMAL(18, 8)
MONEY_QUANTUM = Decimal("0.00000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
