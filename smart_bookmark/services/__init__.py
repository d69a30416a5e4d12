"""Services — orchestration of core logic around infrastructure collaborators."""
