"""*attrs*-based helpers to declare documented data classes."""

from __future__ import annotations

import enum
from textwrap import dedent, indent

import attrs


class MetadataKey(enum.Enum):
    """
    Field metadata keys used to store documentation.
    """

    DOC = "doc"  #: Documentation for this field (str)
    TYPE = "type"  #: Documented type for this field (str)
    DEFAULT = "default"  #: Documented default value for this field (str)


def _format_fields(cls_doc: str | None, fields: list[attrs.Attribute]) -> str | None:
    # Append a numpydoc "Parameters" section built from field metadata
    entries = []

    for field in fields:
        if MetadataKey.DOC not in field.metadata:
            continue

        type_doc = field.metadata.get(MetadataKey.TYPE)
        default = field.metadata.get(MetadataKey.DEFAULT)
        header = field.name.lstrip("_")
        if type_doc is not None:
            header += f" : {type_doc}"
        if default is not None:
            header += f", default: {default}"

        entries.append(f"{header}\n{indent(field.metadata[MetadataKey.DOC], '    ')}\n")

    if not entries:
        return cls_doc

    cls_doc = dedent((cls_doc or "").lstrip("\n")).rstrip()
    return "\n".join((cls_doc, "", "Parameters", "----------", "\n".join(entries)))


def parse_docs(cls: type) -> type:
    """
    Update the docstring of an *attrs* class with the documentation attached
    to its fields by :func:`documented`. Must be applied after the *attrs*
    decorator.
    """
    cls.__doc__ = _format_fields(cls.__doc__, list(attrs.fields(cls)))
    return cls


def documented(
    attrib,
    doc: str | None = None,
    type: str | None = None,
    default: str | None = None,
):
    """
    Declare an *attrs* field as documented.

    Parameters
    ----------
    attrib
        *attrs* field definition to which documentation is attached.

    doc : str, optional
        Docstring for the considered field.

    type : str, optional
        Documented type for the considered field.

    default : str, optional
        Documented default value for the considered field.

    Returns
    -------
    ``attrib``, with its metadata updated.
    """
    for key, value in [
        (MetadataKey.DOC, doc),
        (MetadataKey.TYPE, type),
        (MetadataKey.DEFAULT, default),
    ]:
        if value is not None:
            attrib.metadata[key] = value

    return attrib


def define(maybe_cls=None, **kwargs):
    """
    A wrapper around :func:`attrs.define` which applies :func:`.parse_docs`.
    All arguments are forwarded to :func:`attrs.define`.
    """

    def wrap(cls):
        return parse_docs(attrs.define(maybe_cls=cls, **kwargs))

    return wrap if maybe_cls is None else wrap(maybe_cls)
