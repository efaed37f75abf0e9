from lark import Lark, Transformer, v_args

from dat_model import Coordinates


# Coordinate block shared by entity lines and info.camerapos
coordinates_grammar = r"""
    start: translation rotation? scale?
    translation: "Translation" ":"? xyz
    rotation: "Rotation" ":"? "P" "=" NUMBER "Y" "=" NUMBER "R" "=" NUMBER
    scale: "Scale" ":"? xyz
    xyz: "X" "=" NUMBER "Y" "=" NUMBER "Z" "=" NUMBER

    NUMBER: /[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?/
    %import common.WS
    %ignore WS
"""

# Script trigger lines and in-chain conditionals
script_grammar = r"""
    trigger: TRIGGER_KIND paren target target? ";"?
    conditional: paren (target target? | NAME) ";"?

    paren: "(" (COND_CHUNK | paren)* ")"
    target: "[" NAME "]"

    TRIGGER_KIND: "when" | "if"
    COND_CHUNK: /[^()\[\];]+/
    NAME: /[A-Za-z_][A-Za-z0-9_]*/
    %import common.WS
    %ignore WS
"""

coordinates_parser = Lark(
    coordinates_grammar,
    start='start',
    parser='lalr',
    propagate_positions=True
)

script_parser = Lark(
    script_grammar,
    start=['trigger', 'conditional'],
    parser='lalr',
    propagate_positions=True
)


class BuildCoordinates(Transformer):
    def xyz(self, items):
        return tuple(float(item) for item in items)

    def translation(self, items):
        return ('translation', items[0])

    def rotation(self, items):
        return ('rotation', tuple(float(item) for item in items))

    def scale(self, items):
        return ('scale', items[0])

    def start(self, items):
        parts = dict(items)
        return Coordinates(
            parts.get('translation', (0.0, 0.0, 0.0)),
            parts.get('rotation', (0.0, 0.0, 0.0)),
            parts.get('scale', (1.0, 1.0, 1.0)),
        )


class ParsedTrigger:
    def __init__(self, kind, condition, condition_start, targets):
        self.kind = kind
        self.condition = condition
        # Offset of the condition text within the parsed line
        self.condition_start = condition_start
        self.targets = targets


class BuildTrigger(Transformer):
    """
    Turns trigger/conditional trees into ParsedTrigger values. The condition is
    sliced out of the input line so spacing inside it is preserved.
    """

    def __init__(self, text):
        super().__init__()
        self.text = text

    @v_args(meta=True)
    def paren(self, meta, children):
        # Third item is the nested span when the parens hold nothing but another paren group
        nested = children[0] if len(children) == 1 and isinstance(children[0], tuple) else None
        return (meta.start_pos + 1, meta.end_pos - 1, nested)

    def target(self, items):
        return str(items[0])

    def _build(self, kind, span, targets):
        start, end = span[0], span[1]
        raw = self.text[start:end]
        start += len(raw) - len(raw.lstrip())
        return ParsedTrigger(kind, raw.strip(), start, [str(t) for t in targets])

    def trigger(self, items):
        return self._build(str(items[0]), items[1], items[2:])

    def conditional(self, items):
        # ((cond)) and (cond) are the same condition
        span = items[0]
        if span[2] is not None:
            span = span[2]
        return self._build('conditional', span, items[1:])


def parse_coordinates(text):
    tree = coordinates_parser.parse(text)
    return BuildCoordinates().transform(tree)


def parse_trigger(text):
    tree = script_parser.parse(text, start='trigger')
    return BuildTrigger(text).transform(tree)


def parse_conditional(text):
    tree = script_parser.parse(text, start='conditional')
    return BuildTrigger(text).transform(tree)
