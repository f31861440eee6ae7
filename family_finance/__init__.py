"""Top‑level package for the Family Finance tracker.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``storage`` – the persistence store holding every collection
* ``analytics`` – period filtering, summaries, breakdowns and trends
* ``serialization`` – JSON snapshot and CSV export formats
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run family_finance/dashboard.py
```
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from . import serialization  # noqa: F401  # re-exported for convenience
from . import storage  # noqa: F401  # re-exported for convenience
from .storage import FinanceStore  # noqa: F401

# Import dashboard lazily.  Streamlit may not be installed in all
# environments (e.g. during unit testing).
try:
    from . import dashboard  # type: ignore  # noqa: F401
except ModuleNotFoundError:
    dashboard = None  # type: ignore


__all__ = ["analytics", "serialization", "storage", "dashboard", "FinanceStore"]
