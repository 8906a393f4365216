"""
Entry point for running the CLI as a module: `python -m cli`

Examples:
  python -m cli parse notes.md
  python -m cli check-regex '(a+)+'
  python -m cli templates
"""

from cli import main

if __name__ == "__main__":
    main()
