"""DOCX route constants."""

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
STREAM_MEDIA_TYPE = "application/octet-stream"

DEFAULT_SLICE_NAME = "slice.docx"
DEFAULT_GENERATED_NAME = "generated.docx"

UNITS_HEADER = "X-Content-Units"
STEP_HEADER = "X-Stream-Step"
