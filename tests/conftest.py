import os
import tempfile

os.environ.setdefault("PAYBUDGET_DATA_DIR", tempfile.mkdtemp(prefix="paybudget-"))
