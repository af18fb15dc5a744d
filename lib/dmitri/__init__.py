from .decoder    import decode
from .encoder    import encode, encode_table
from .entrypoint import parse as parse_entry_point, scan
from .fields     import decode_records, decode_structure, table_config
from .sources    import read
from .logging    import *
from .types      import *
from .ftoml      import dump, load
