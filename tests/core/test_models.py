from dataclasses import FrozenInstanceError

import pytest

from pianoscribe.core.models import (
    Meter, Note, Part, Project, ProjectDecodeError,
    add_part, append_note, beat2time, map_notes, pulse2time, remove_part,
    replace_note, time2beat, time2pulse, update_meter, with_part,
)


def test_note_validation():
    with pytest.raises(ValueError):
        Note(0, 0, 60)
    with pytest.raises(ValueError):
        Note(0, -24, 60)
    assert Note(24, 48, 60).end == 72


def test_models_are_frozen():
    note = Note(0, 24, 60)
    with pytest.raises(FrozenInstanceError):
        note.pitch = 61


def test_meter_validation():
    with pytest.raises(ValueError):
        Meter(state="playing")
    with pytest.raises(ValueError):
        Meter(bpm=0)
    with pytest.raises(ValueError):
        Meter(subdivision=5)
    assert Meter(subdivision=3).pulses_per_subdivision == 32
    assert not Meter().is_set
    assert Meter(state="locked").is_set


def test_time_conversions():
    meter = Meter(state="active", bpm=120.0, start_offset=1.0)
    assert time2beat(meter, 1.0) == 0
    assert time2beat(meter, 2.0) == 2
    assert beat2time(meter, 4) == 3.0
    assert time2pulse(meter, 1.5) == 96
    assert pulse2time(meter, 192) == 2.0


def test_append_and_replace_share_untouched_parts(project):
    p2 = append_note(project, 0, Note(300, 24, 50))
    assert p2.parts[0].notes[-1] == Note(300, 24, 50)
    assert p2.parts[1] is project.parts[1]
    assert project.parts[0].notes == (Note(0, 96, 60), Note(96, 48, 64))

    p3 = replace_note(p2, 1, 0, Note(192, 48, 67))
    assert p3.parts[0] is p2.parts[0]
    assert p3.parts[1].notes == (Note(192, 48, 67),)


def test_with_part_identity(project):
    assert with_part(project, 0, project.parts[0]) is project


def test_map_notes_reuses_unchanged_parts(project):
    p2 = map_notes(project, lambda pi, ni, n: Note(n.start, n.length, n.pitch + 1) if pi == 1 else n)
    assert p2.parts[0] is project.parts[0]
    assert p2.parts[1].notes[0].pitch == 68


def test_add_and_remove_part(project):
    p2 = add_part(project)
    assert len(p2.parts) == 3
    assert p2.parts[2] == Part()
    p3 = remove_part(p2, 0)
    assert p3.parts == (project.parts[1], Part())


def test_update_meter(project):
    p2 = update_meter(project, bpm=90.0)
    assert p2.meter.bpm == 90.0
    assert p2.parts is project.parts


def test_dict_round_trip(project):
    assert Project.from_dict(project.to_dict()) == project


def test_from_dict_reports_field_path(project):
    data = project.to_dict()
    data["parts"][1]["notes"][0]["length"] = 0
    with pytest.raises(ProjectDecodeError) as e:
        Project.from_dict(data)
    assert e.value.path == "parts[1].notes[0].length"


def test_from_dict_rejects_wrong_types(project):
    data = project.to_dict()
    data["parts"][0]["notes"][1]["pitch"] = "C4"
    with pytest.raises(ProjectDecodeError) as e:
        Project.from_dict(data)
    assert e.value.path == "parts[0].notes[1].pitch"

    data = project.to_dict()
    data["meter"]["measure_length"] = True
    with pytest.raises(ProjectDecodeError) as e:
        Project.from_dict(data)
    assert e.value.path == "meter.measure_length"


def test_from_dict_missing_field(project):
    data = project.to_dict()
    del data["meter"]["subdivision"]
    with pytest.raises(ProjectDecodeError, match="missing field") as e:
        Project.from_dict(data)
    assert e.value.path == "meter.subdivision"
    assert isinstance(e.value, ValueError)


@pytest.mark.parametrize("field_name,value", [
    ("bpm", float("inf")),
    ("bpm", float("nan")),
    ("start_offset", float("nan")),
    ("start_offset", float("-inf")),
])
def test_from_dict_rejects_non_finite_meter(project, field_name, value):
    data = project.to_dict()
    data["meter"][field_name] = value
    with pytest.raises(ProjectDecodeError) as e:
        Project.from_dict(data)
    assert e.value.path == f"meter.{field_name}"
