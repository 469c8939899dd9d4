"""Built-in executors.

function    FunctionExecutor / @executor -- wrap a Python callable
command     CommandExecutor -- run a subprocess with the context as JSON
template    TemplateExecutor -- render a Jinja2 template, then reload
"""

from keysentinel.executors.command import CommandExecutor
from keysentinel.executors.function import FunctionExecutor, executor
from keysentinel.executors.template import TemplateExecutor

__all__ = ["CommandExecutor", "FunctionExecutor", "TemplateExecutor", "executor"]
