"""One-shot command-line scripts. Each module exposes `main()`."""
