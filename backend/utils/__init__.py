# utils package initializer
# This file allows Python to treat the "utils" directory as a package.

from .file_utils import (
    save_upload_stream,
    load_table_rows,
    get_latest_uploaded_file,
    write_dataframe_csv,
    write_dataframe_excel,
)

from .data_processing import (
    to_float_safe,
    to_int_safe,
    safe_divide,
)
