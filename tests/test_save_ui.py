import json

import pytest

from save_data import Color, F32, I32, IndexMap, SaveString, Vec
from save_ui import DictExportUi, SaveUi, TextDumpUi
from sample_schema import Difficulty, PlayerProfile, build_profile_bytes


class RecordingUi(SaveUi):
    """Walks the whole tree, remembering which callback saw which ident."""

    def __init__(self):
        self.calls = []

    def _leaf(self, kind, ident, node):
        self.calls.append((kind, ident))

    def draw_edit_bool(self, ident, node):
        self._leaf('bool', ident, node)

    def draw_edit_byte(self, ident, node):
        self._leaf('byte', ident, node)

    def draw_edit_int(self, ident, node):
        self._leaf('int', ident, node)

    def draw_edit_float(self, ident, node):
        self._leaf('float', ident, node)

    def draw_edit_string(self, ident, node):
        self._leaf('string', ident, node)

    def draw_edit_enum(self, ident, node):
        self._leaf('enum', ident, node)

    def draw_bytes(self, ident, node):
        self._leaf('bytes', ident, node)

    def draw_struct(self, ident, fields):
        self.calls.append(('struct', ident))
        for name, child in fields:
            child.draw_raw_ui(self, name)

    def draw_vec(self, ident, items):
        self.calls.append(('vec', ident))
        for i, item in enumerate(items):
            item.draw_raw_ui(self, str(i))

    def draw_indexmap(self, ident, mapping):
        self.calls.append(('map', ident))
        for key, value in mapping.items():
            key.draw_raw_ui(self, 'key')
            value.draw_raw_ui(self, 'value')

    def draw_boolvec(self, ident, bits):
        self.calls.append(('bits', ident))


class EditingUi(RecordingUi):
    """Applies edits through the hook, the way an interactive editor would."""

    def __init__(self, edits):
        super().__init__()
        self.edits = edits

    def _leaf(self, kind, ident, node):
        super()._leaf(kind, ident, node)
        if ident in self.edits:
            node.set(self.edits[ident])


@pytest.fixture
def profile():
    return PlayerProfile.from_bytes(build_profile_bytes(), strict=True)


def test_each_node_picks_its_widget(profile):
    ui = RecordingUi()
    profile.draw_raw_ui(ui, 'profile')

    assert ui.calls[:10] == [
        ('struct', 'profile'),
        ('int', 'version'),
        ('string', 'name'),
        ('enum', 'difficulty'),
        ('enum', 'origin'),
        ('struct', 'position'),
        ('float', 'x'),
        ('float', 'y'),
        ('float', 'z'),
        ('bool', 'is_female'),
    ]
    assert ('bytes', 'guid') in ui.calls
    assert ('vec', 'squad') in ui.calls
    assert ('map', 'codex') in ui.calls
    assert ui.calls[-1] == ('bits', 'plot')


def test_hook_edits_happen_in_place(profile):
    ui = EditingUi({'version': 31, 'difficulty': Difficulty.CASUAL, 'is_female': False})

    profile.draw_raw_ui(ui, 'profile')

    assert profile.version == 31
    assert profile.difficulty.value is Difficulty.CASUAL
    assert profile.is_female.value is False

    reloaded = PlayerProfile.from_bytes(profile.to_bytes(), strict=True)
    assert reloaded.version == 31
    assert reloaded.difficulty.value is Difficulty.CASUAL


def test_base_contract_requires_implementation():
    with pytest.raises(NotImplementedError):
        I32(1).draw_raw_ui(SaveUi(), 'value')


def test_text_dump(profile):
    text = TextDumpUi().render(profile, 'PlayerProfile')
    lines = text.splitlines()

    assert lines[0] == 'PlayerProfile:'
    assert '  version: 29' in lines
    assert "  name: 'Shepard\\x00'" in lines
    assert '  difficulty: INSANITY (2)' in lines
    assert '    x: 1.5' in lines
    assert '  guid: de ad be ef' in lines
    assert '  squad: [2]' in lines
    assert "      tag: 'Garrus\\x00' (utf-16)" in lines
    assert '  codex: {2}' in lines
    assert '  plot: 3/64 set' in lines
    assert '    set: 0, 31, 34' in lines


def test_text_dump_marks_empty_containers():
    lines = TextDumpUi().render(Vec[I32](), 'items').splitlines()

    assert lines == ['items: [0]', '  (empty)']


def test_dict_export(profile):
    data = DictExportUi().export(profile)

    assert data['version'] == 29
    assert data['difficulty'] == 'INSANITY'
    assert data['position'] == {'x': 1.5, 'y': -2.0, 'z': 0.25}
    assert data['guid'] == 'deadbeef'
    assert data['squad'][0] == {'tag': 'Garrus\x00', 'powers': [10, 20], 'loyal': False}
    assert data['codex'] == [
        {'key': 7, 'value': 'Prothéans\x00'},
        {'key': 3, 'value': ''},
    ]
    assert len(data['plot']) == 64
    # Must be JSON serialisable as-is
    json.dumps(data)


def test_dict_export_of_nested_maps():
    mapping = IndexMap[SaveString, Vec[I32]]()
    mapping[SaveString('a')] = Vec[I32]([I32(1)])
    mapping[SaveString('b')] = Vec[I32]()

    assert DictExportUi().export(mapping) == [
        {'key': 'a', 'value': [1]},
        {'key': 'b', 'value': []},
    ]


def test_color_uses_its_own_widget():
    color = Color.default()
    color.set((1.0, 0.5, 0.0, 1.0))

    assert TextDumpUi().render(color, 'tint') == 'tint: rgba(1, 0.5, 0, 1)'
    assert DictExportUi().export(color) == [1.0, 0.5, 0.0, 1.0]
    with pytest.raises(NotImplementedError):
        color.draw_raw_ui(SaveUi(), 'tint')


def test_dict_export_of_non_finite_floats():
    values = Vec[F32]([F32(float('nan')), F32(float('inf')), F32(float('-inf')), F32(2.5)])

    data = DictExportUi().export(values)

    assert data == ['nan', 'inf', '-inf', 2.5]
    json.dumps(data, allow_nan=False)
