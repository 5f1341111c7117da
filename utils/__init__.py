"""
Shared helpers: exception hierarchy, artifact I/O, timeouts and results layout.

pandas Copy-on-Write is switched on for every importer; recipes and engines
slice frames freely and rely on never mutating their inputs.
"""

import pandas as pd


def enable_copy_on_write() -> bool:
    """Turn on Copy-on-Write. pandas 3 always behaves this way and deprecates the option."""
    if int(pd.__version__.split('.')[0]) >= 3:
        return False
    pd.options.mode.copy_on_write = True
    return True


enable_copy_on_write()
