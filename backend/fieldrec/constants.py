from pathlib import Path

APP_DIR = Path(__file__).resolve().parent

THERMAL_RAW = "thermalRaw"
FINISHED = "FINISHED"
MP4_MIME_TYPE = "video/mp4"

# Columns returned by the general listing view. rawFileKey is left out on
# purpose; only the single-record fetch adds it.
USER_GET_ATTRIBUTES = (
    "id",
    "raw_file_size",
    "file_size",
    "file_mime_type",
    "processing_state",
    "duration",
    "recording_date_time",
    "location",
    "version",
    "battery_level",
    "battery_charging",
    "airplane_mode_on",
    "type",
    "additional_metadata",
    "group_id",
    "device_id",
    "file_key",
    "comment",
    "public",
)

# What an uploading device may populate.
API_SETTABLE_FIELDS = frozenset(
    {
        "type",
        "duration",
        "recording_date_time",
        "location",
        "version",
        "battery_charging",
        "battery_level",
        "airplane_mode_on",
        "additional_metadata",
        "processing_meta",
        "comment",
    }
)

# What a user may change afterwards.
API_UPDATABLE_FIELDS = frozenset({"location", "comment"})

PROCESSING_STATES = {
    THERMAL_RAW: ("toMp4", FINISHED),
}

# Columns handed to the transcoding worker.
PROCESSING_ATTRIBUTES = (
    "id",
    "raw_file_key",
    "file_key",
    "processing_meta",
    "processing_state",
    "job_key",
    "type",
)
