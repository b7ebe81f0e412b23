"""Shared constants for Hawl and zakat calculation."""

# Nisab threshold (minimum wealth for zakat obligation)
NISAB_GOLD_GRAMS = 85

# Zakat rate (2.5%)
ZAKAT_RATE = 0.025

# A Hawl completes after 12 lunar months above nisab
HAWL_LUNAR_MONTHS = 12

# Report notes
NOTE_HAWL_BEGINS = 'hawl begins'
NOTE_HAWL_CONTINUES = 'hawl continues'
NOTE_BELOW_NISAB = 'below nisab'
NOTE_ZAKAT_DUE = 'zakat due since'

# Report row classes
ROW_CLASS_HAWL_START = 'hawl-start'
ROW_CLASS_BELOW_NISAB = 'below-nisab'
ROW_CLASS_ZAKAT_DUE = 'zakat-due'
ROW_CLASS_CONTINUES = ''

# Nisab resolution granularity
NISAB_GRANULARITIES = ('year', 'month')
