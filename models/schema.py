# Centralized collection names to prevent drift.

COL_SYSTEM = "system"
DOC_HEALTHZ = "healthz"

# Manual overrides: manual_entries/{barcode}
COL_MANUAL_ENTRIES = "manual_entries"
