"""AVL tree, hash tables, sequence alignment, thread helpers and a buffered URL reader."""

__version__ = "0.1.0"

__all__ = ["avl", "khash", "khashl", "ksw", "ksw_extend", "kthread", "kurl"]