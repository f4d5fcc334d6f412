"""Group decision engine: candidate filtering and KN+M turn-based elimination."""
