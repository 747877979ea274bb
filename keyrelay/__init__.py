"""keyrelay

Credential pool and failover engine for interchangeable LLM providers.
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("keyrelay")
except PackageNotFoundError:
    # Fallback for source checkouts that were never installed
    __version__ = "0.1.0"
__author__ = "keyrelay"
