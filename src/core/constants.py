"""
AccessWatch - Constants
Barrier categories, severity colors, media limits and user-facing messages.
"""

# =============================================================================
# BARRIER CATEGORIES
# =============================================================================

# Closed set returned by the classifier, with display labels
CATEGORY_LABELS = {
    "blocked_sidewalk": "Blocked Sidewalk",
    "broken_pavement": "Broken Pavement",
    "missing_curb_ramp": "Missing Curb Ramp",
    "steps_without_ramp": "Steps Without Ramp",
    "narrow_path": "Narrow Path",
    "broken_elevator": "Broken Elevator",
    "inaccessible_entrance": "Inaccessible Entrance",
    "missing_signage": "Missing Signage",
    "other": "Other",
}

# =============================================================================
# SEVERITY
# =============================================================================

SEVERITY_COLORS = {
    "low": "#22c55e",
    "medium": "#f59e0b",
    "high": "#ef4444",
}

# =============================================================================
# MEDIA
# =============================================================================

MAX_MEDIA_BYTES = 20 * 1024 * 1024  # 20 MiB

# Photo formats that browsers cannot render without conversion
PROPRIETARY_EXTENSIONS = (".heic", ".heif")
PROPRIETARY_CONTENT_TYPES = ("image/heic", "image/heif")

NORMALIZED_CONTENT_TYPE = "image/jpeg"
NORMALIZED_EXTENSION = ".jpg"
DEFAULT_JPEG_QUALITY = 0.9

# =============================================================================
# ROUTING
# =============================================================================

MATCH_BASIS_GEO_WITHIN = "geoWithin"

# =============================================================================
# USER-FACING ADVISORIES
# =============================================================================

MSG_UNSUPPORTED_MEDIA = "Please select an image or video file"
MSG_FILE_TOO_LARGE = "File must be under 20MB"
MSG_CONVERSION_FAILED = "Failed to convert HEIC image. Please try a different format."
MSG_GEOLOCATION_FAILED = "Could not get your location. Pan the map to set location."
MSG_ANALYSIS_FAILED = "Failed to analyze media. Please try again."
MSG_SUBMISSION_FAILED = "Failed to submit report. Please try again."
