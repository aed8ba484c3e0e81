"""
Helpers for pandoc's JSON document tree.

A document is the dict pandoc emits with `-t json`:
  {"pandoc-api-version": [...], "meta": {...}, "blocks": [...]}
Elements are dicts with a type tag "t" and, for most types, contents "c".
Two documents are equal iff their blocks and metadata are equal as JSON values;
the api version is not part of the comparison.
"""
import copy
import re
import typing as tg

import base as b
import prvr.constants as c

Document = b.StrAnyDict
Element = b.StrAnyDict
Visitors = dict[str, tg.Callable[[tg.Any], tg.Any]]

# element types whose first content item is an Attr triple
ATTR_FIRST = ('CodeBlock', 'Div', 'Figure', 'Table', 'Code', 'Span', 'Link', 'Image')


# ----- construction:

def document(blocks: list[Element], meta: tg.Optional[b.StrAnyDict] = None) -> Document:
    return {'meta': meta or {}, 'blocks': blocks}


def attr(identifier: str = "", classes: tg.Sequence[str] = (),
         attributes: tg.Optional[dict[str, str]] = None) -> list:
    return [identifier, list(classes), [[k, v] for k, v in (attributes or {}).items()]]


def code_block(text: str, identifier: str = "", classes: tg.Sequence[str] = (),
               attributes: tg.Optional[dict[str, str]] = None) -> Element:
    return {'t': 'CodeBlock', 'c': [attr(identifier, classes, attributes), text]}


def div(blocks: list[Element], identifier: str = "", classes: tg.Sequence[str] = (),
        attributes: tg.Optional[dict[str, str]] = None) -> Element:
    return {'t': 'Div', 'c': [attr(identifier, classes, attributes), blocks]}


def header(level: int, inlines: list[Element], identifier: str = "") -> Element:
    return {'t': 'Header', 'c': [level, attr(identifier), inlines]}


def para(inlines: list[Element]) -> Element:
    return {'t': 'Para', 'c': inlines}


def raw_block(format: str, text: str) -> Element:
    return {'t': 'RawBlock', 'c': [format, text]}


def emph(inlines: list[Element]) -> Element:
    return {'t': 'Emph', 'c': inlines}


def str_(text: str) -> Element:
    return {'t': 'Str', 'c': text}


def space() -> Element:
    return {'t': 'Space'}


def soft_break() -> Element:
    return {'t': 'SoftBreak'}


def text_to_inlines(text: str) -> list[Element]:
    """Words become Str, whitespace runs become Space, or SoftBreak if they contain a newline."""
    result = []
    for token in re.findall(r'\s+|\S+', text):
        if not token.isspace():
            result.append(str_(token))
        elif '\n' in token:
            result.append(soft_break())
        else:
            result.append(space())
    return result


# ----- element access:

def get_attr(el: Element) -> tg.Optional[list]:
    if el.get('t') in ATTR_FIRST:
        return el['c'][0]
    if el.get('t') == 'Header':
        return el['c'][1]
    return None


def identifier(el: Element) -> str:
    the_attr = get_attr(el)
    return the_attr[0] if the_attr else ""


def classes(el: Element) -> list[str]:
    the_attr = get_attr(el)
    return list(the_attr[1]) if the_attr else []


def attributes(el: Element) -> dict[str, str]:
    the_attr = get_attr(el)
    return {k: v for k, v in the_attr[2]} if the_attr else {}


def code_text(el: Element) -> str:
    return el['c'][1]


def set_code_text(el: Element, text: str):
    el['c'][1] = text


def div_content(el: Element) -> list[Element]:
    return el['c'][1]


def set_div_content(el: Element, blocks: list[Element]):
    el['c'][1] = blocks


def is_section(el: Element) -> bool:
    content = div_content(el) if el.get('t') == 'Div' else []
    return c.SECTION_CLASS in classes(el) and bool(content) and content[0].get('t') == 'Header'


def without_section_header(el: Element) -> Element:
    """A copy of section Div `el` minus its heading."""
    the_attr, content = el['c']
    return {'t': 'Div', 'c': [copy.deepcopy(the_attr), copy.deepcopy(content[1:])]}


def has_meta(doc: Document) -> bool:
    return bool(doc.get('meta'))


def equal(doc1: Document, doc2: Document) -> bool:
    return doc1['blocks'] == doc2['blocks'] and doc1.get('meta', {}) == doc2.get('meta', {})


# ----- traversal:

def walk(doc: Document, visitors: Visitors, copying=True) -> Document:
    """
    Applies visitors (keyed by element type) bottom-up to all elements of doc,
    including the elements inside metadata.
    A visitor returning None keeps the element, anything else replaces it.
    The key 'Meta' names a visitor for the whole metadata mapping.
    With copying=False, doc is traversed (and possibly modified) in place.
    """
    result = copy.deepcopy(doc) if copying else doc
    result['blocks'] = _walk_value(result['blocks'], visitors)
    result['meta'] = _walk_mapping(result.get('meta', {}), visitors)
    if 'Meta' in visitors:
        newmeta = visitors['Meta'](result['meta'])
        if newmeta is not None:
            result['meta'] = newmeta
    return result


def _walk_value(node, visitors: Visitors):
    if isinstance(node, list):
        return [_walk_value(item, visitors) for item in node]
    if isinstance(node, dict):
        if isinstance(node.get('t'), str):
            return _walk_element(node, visitors)
        return _walk_mapping(node, visitors)  # untagged records such as Citation
    return node


def _walk_element(el: Element, visitors: Visitors):
    if 'c' in el:
        if el['t'] == 'MetaMap':
            el['c'] = _walk_mapping(el['c'], visitors)
        else:
            el['c'] = _walk_value(el['c'], visitors)
    visitor = visitors.get(el['t'])
    if visitor is not None:
        replacement = visitor(el)
        if replacement is not None:
            return replacement
    return el


def _walk_mapping(mapping: dict, visitors: Visitors) -> dict:
    return {key: _walk_value(value, visitors) for key, value in mapping.items()}


def elements(node) -> tg.Iterator[Element]:
    """All elements in node (an element or list), children before their parents, without copying."""
    if isinstance(node, list):
        for item in node:
            yield from elements(item)
    elif isinstance(node, dict) and isinstance(node.get('t'), str):
        if node['t'] == 'MetaMap':
            yield from elements(list(node['c'].values()))
        elif 'c' in node:
            yield from elements(node['c'])
        yield node
    elif isinstance(node, dict):
        yield from elements(list(node.values()))


def make_sections(blocks: list[Element]) -> list[Element]:
    """
    Groups each heading and the blocks up to the next heading of the same or higher rank
    into a Div of class 'section'. The heading's identifier moves to the Div.
    Div contents are sectioned as well.
    The new lists hold the very same element objects as `blocks`, except for the headings
    and for Divs that contain headings.
    """
    result = []
    i = 0
    while i < len(blocks):
        block = blocks[i]
        if block.get('t') != 'Header':
            result.append(_sectioned_div(block) if block.get('t') == 'Div' else block)
            i += 1
            continue
        level, (ident, hclasses, hkvs), inlines = block['c']
        end = i + 1
        while end < len(blocks) and not (blocks[end].get('t') == 'Header' and
                                         blocks[end]['c'][0] <= level):
            end += 1
        heading = {'t': 'Header', 'c': [level, ["", hclasses, hkvs], inlines]}
        section_attr = [ident, [c.SECTION_CLASS] + list(hclasses), list(hkvs)]
        result.append({'t': 'Div', 'c': [section_attr, [heading] + make_sections(blocks[i+1:end])]})
        i = end
    return result


def _sectioned_div(el: Element) -> Element:
    content = div_content(el)
    sectioned = make_sections(content)
    if len(sectioned) == len(content) and all(new is old for new, old in zip(sectioned, content)):
        return el
    return {'t': 'Div', 'c': [el['c'][0], sectioned]}


def section_extent(blocks: list[Element], ident: str) -> tg.Optional[tuple[list[Element], int, int]]:
    """
    Finds the heading with identifier `ident` anywhere below `blocks`.
    Returns (containing list, index of heading, index after its last section block).
    """
    for i, block in enumerate(blocks):
        if block.get('t') == 'Header' and identifier(block) == ident:
            level = block['c'][0]
            end = i + 1
            while end < len(blocks) and not (blocks[end].get('t') == 'Header' and
                                             blocks[end]['c'][0] <= level):
                end += 1
            return blocks, i, end
        for sublist in _child_blocklists(block):
            found = section_extent(sublist, ident)
            if found:
                return found
    return None


def _child_blocklists(block: Element) -> tg.Iterator[list[Element]]:
    t = block.get('t')
    if t in ('Div', 'Figure'):
        yield block['c'][-1]
    elif t == 'BlockQuote':
        yield block['c']
    elif t == 'BulletList':
        yield from block['c']
    elif t == 'OrderedList':
        yield from block['c'][1]


# ----- conversion:

def stringify(node) -> str:
    """Plain text content of an element, a list of elements, or a metadata value."""
    if isinstance(node, list):
        return "".join(stringify(item) for item in node)
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return ""
    t = node.get('t')
    content = node.get('c')
    if t in ('Str', 'MetaString'):
        return content
    if t in ('Space', 'SoftBreak', 'LineBreak'):
        return " "
    if t == 'MetaBool':
        return "true" if content else "false"
    if t in ('Code', 'Math', 'CodeBlock'):
        return content[1]
    if t in ('RawInline', 'RawBlock', 'Note'):
        return ""
    if t == 'Quoted':
        return "“%s”" % stringify(content[1]) if content[0]['t'] == 'DoubleQuote' \
               else "‘%s’" % stringify(content[1])
    if t == 'MetaBlocks':
        return "\n".join(stringify(blk) for blk in content)
    if t == 'Header':
        return stringify(content[2])
    if t in ('Cite', 'Link', 'Image', 'Span', 'Div'):
        return stringify(content[1])
    if t == 'Figure':
        return stringify(content[2])
    if t == 'MetaMap':
        return "".join(stringify(v) for v in content.values())
    return stringify(content)


def meta_to_python(value) -> tg.Any:
    """Converts a pandoc metadata value into plain dict/list/bool/str values."""
    t = value.get('t') if isinstance(value, dict) else None
    if t == 'MetaMap':
        return meta_dict(value['c'])
    if t == 'MetaList':
        return [meta_to_python(v) for v in value['c']]
    if t == 'MetaBool':
        return value['c']
    return stringify(value)


def meta_dict(meta: b.StrAnyDict) -> b.StrAnyDict:
    """Converts a document's metadata mapping (or a MetaMap's contents) into plain values."""
    return {key: meta_to_python(value) for key, value in meta.items()}
