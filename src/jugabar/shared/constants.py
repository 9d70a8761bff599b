"""Shared constants for the Naver stock API and portfolio tracking."""

BASE_URL = "https://m.stock.naver.com/api"

# Market indices, in display order
KOSPI = "KOSPI"
KOSDAQ = "KOSDAQ"
INDEX_CODES = (KOSPI, KOSDAQ)

# Instrument segments as reported by stockExchangeType.code
SEGMENT_KOSPI = "KS"
SEGMENT_KOSDAQ = "KQ"
SEGMENTS = (SEGMENT_KOSPI, SEGMENT_KOSDAQ)

SEGMENT_TO_INDEX = {SEGMENT_KOSPI: KOSPI, SEGMENT_KOSDAQ: KOSDAQ}
INDEX_TO_SEGMENT = {KOSPI: SEGMENT_KOSPI, KOSDAQ: SEGMENT_KOSDAQ}

# Provider codes
DIRECTION_RISING = "2"
DIRECTION_FALLING = "5"
STATUS_OPEN = "OPEN"

# Refresh settings (seconds, 0 = manual only)
DEFAULT_REFRESH_INTERVAL = 60.0
REFRESH_INTERVAL_PRESETS = (0.0, 10.0, 30.0, 60.0, 300.0)

# Symbol directory paging
DIRECTORY_PAGES = 2
DIRECTORY_PAGE_SIZE = 100

# Persisted setting keys
LEGACY_CODES_KEY = "watchedStockCodes"
REFRESH_INTERVAL_KEY = "refreshInterval"
