import os
import warnings

# Ignore warnings from app.shared
warnings.filterwarnings("ignore", category=DeprecationWarning, module="app.shared.*")

# Set test environment variables before app config is imported
os.environ.update(
    {
        "STORE_BACKEND": "memory",
        "DEMO_MODE": "true",
        "CRON_SECRET": "",
    }
)

# Import fixtures so they are available to all tests
from tests.fixtures.live_queue_fixtures import *  # noqa: E402, F403
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
