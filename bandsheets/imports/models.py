from enum import StrEnum


class ImportPolicy(StrEnum):
    skip = "skip"
    rename = "rename"
    overwrite = "overwrite"


NO_SHEETS_MESSAGE = "Invalid import data. No sheets found in the import file."
UNKNOWN_FORMAT_MESSAGE = "Invalid import file. Could not determine file format."
