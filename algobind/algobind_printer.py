"""
Human-readable formatting for signatures, bound members and invocations.
"""
import collections.abc

import pystache

from algobind.algobind_datatypes import Signature, Invocation


_SIGNATURE_TEMPLATE = """\
{{name}}({{params}})

{{description}}
{{#has_args}}

Args:
{{#args}}
  {{label}} ({{annotation}}): {{text}}
{{/args}}
{{/has_args}}
"""


class Printer:
    """Formats catalogue values and signatures into readable text."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()
        self._renderer = pystache.Renderer(escape=lambda u: u)

    def pformat(self, obj, level=0):
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, collections.abc.Mapping): return self._pformat_dict
        if isinstance(obj, (list, tuple)): return self._pformat_list
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            bool: self._pformat_primitive,
            type(None): self._pformat_primitive,
            Invocation: self._pformat_invocation,
            Signature: self._pformat_signature,
        }

    def _pformat_primitive(self, obj, level):
        return repr(obj)

    def _pformat_str(self, obj, level):
        return f"'{obj}'"

    def _pformat_list(self, obj, level):
        return "[" + ", ".join(self.pformat(x, level) for x in obj) + "]"

    def _pformat_dict(self, obj, level):
        if not obj:
            return "{}"
        outer = self._indent_char * level
        inner = self._indent_char * (level + 1)
        lines = [f"{inner}{k}: {self.pformat(v, level + 1)}" for k, v in obj.items()]
        return "{\n" + "\n".join(lines) + f"\n{outer}}}"

    def _pformat_invocation(self, obj, level):
        if not obj.args:
            return f"{obj.func.encode()}()"
        args = ", ".join(f"{k}={self.pformat(v, level)}" for k, v in obj.args.items())
        return f"{obj.func.encode()}({args})"

    def _pformat_signature(self, obj, level):
        return self.format_signature(obj)

    def format_signature(self, signature: Signature, name=None, is_instance=False) -> str:
        """Render the call form of `signature`.

        For instance members the receiver is left out of the parameter list
        and labelled `this:` in the argument table.
        """
        args = signature.args
        shown = args[1:] if is_instance else args
        rows = []
        for i, spec in enumerate(args):
            label = f"this:{spec.name}" if (is_instance and i == 0) else spec.name
            annotation = spec.type or "Object"
            if not spec.required:
                annotation += ", optional"
                if spec.default is not None:
                    annotation += f", default: {self.pformat(spec.default)}"
            rows.append({
                "label": label,
                "annotation": annotation,
                "text": spec.description or "Undocumented.",
            })
        context = {
            "name": name or signature.name,
            "params": ", ".join(a.name for a in shown),
            "description": signature.description or "Undocumented.",
            "has_args": bool(rows),
            "args": rows,
        }
        return self._renderer.render(_SIGNATURE_TEMPLATE, context).rstrip("\n")
