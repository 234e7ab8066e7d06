import os

# Keep the app's own engine off any on-disk database; set before courtqueue.settings loads
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Register every courtqueue table before any test module builds the schema
from courtqueue.database import import_models  # noqa: E402

import_models()
