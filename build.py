#!/usr/bin/env python3
from postpress.cli import main

if __name__ == "__main__":
    main()
