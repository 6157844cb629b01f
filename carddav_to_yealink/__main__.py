# Standard Library
import sys

# CardDAV to Yealink
from carddav_to_yealink.carddav_to_yealink import main

if __name__ == "__main__":
    sys.exit(main())
