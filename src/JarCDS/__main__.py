"""Allow ``python -m JarCDS``."""

from JarCDS.cli import main

if __name__ == "__main__":
    main()
