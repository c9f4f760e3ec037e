"""Task model and stores."""

from .base import Documentation, Task, TaskStatus, TaskStore
from .memory import InMemoryTaskStore, load_tasks_file
