from .identifiers import decode_identifier, image_filename, normalize_serial_for_filename
from .image_backup import export_images, import_images
from .spreadsheets import DEFAULT_EXPORT_NAME, read_workbook, rows_from_array, write_workbook

__all__ = [
    "decode_identifier",
    "image_filename",
    "normalize_serial_for_filename",
    "export_images",
    "import_images",
    "DEFAULT_EXPORT_NAME",
    "read_workbook",
    "rows_from_array",
    "write_workbook",
]
