import msgpack
import pytest

from pianoscribe.core.models import Note, Part, Project, ProjectDecodeError
from pianoscribe.core.persistence import FORMAT_VERSION, ProjectFile, decode_project, encode_project


def test_encode_decode(project):
    data = encode_project(project)
    assert msgpack.unpackb(data, raw=False)["version"] == FORMAT_VERSION
    assert decode_project(data) == project


def test_audio_stays_binary():
    project = Project(audio_file=bytes(range(256)), parts=(Part(notes=(Note(0, 1, 0, {"tie": True}),)),))
    decoded = decode_project(encode_project(project))
    assert decoded.audio_file == bytes(range(256))
    assert decoded.parts[0].notes[0].notation == {"tie": True}


def test_decode_garbage():
    with pytest.raises(ProjectDecodeError):
        decode_project(b"\xc1")


def test_decode_trailing_data(project):
    with pytest.raises(ProjectDecodeError):
        decode_project(encode_project(project) + b"\x00")


def test_decode_not_a_map():
    with pytest.raises(ProjectDecodeError, match="expected a map"):
        decode_project(msgpack.packb([1, 2, 3]))


def test_decode_version_mismatch(project):
    data = project.to_dict()
    data["version"] = "2.0"
    with pytest.raises(ProjectDecodeError) as e:
        decode_project(msgpack.packb(data, use_bin_type=True))
    assert e.value.path == "version"


def test_decode_minor_version_accepted(project):
    data = project.to_dict()
    data["version"] = "1.7"
    assert decode_project(msgpack.packb(data, use_bin_type=True)) == project


def test_decode_bad_field(project):
    data = project.to_dict()
    data["version"] = FORMAT_VERSION
    data["parts"][0]["notes"][0]["start"] = 1.5
    with pytest.raises(ProjectDecodeError) as e:
        decode_project(msgpack.packb(data, use_bin_type=True))
    assert e.value.path == "parts[0].notes[0].start"


def test_file_save_load(project, tmp_path):
    path = ProjectFile.save(project, tmp_path / "nested" / "song.txt")
    assert path == tmp_path / "nested" / "song.pscribe"
    assert ProjectFile.load(path) == project


def test_load_missing_file(tmp_path):
    with pytest.raises(IOError):
        ProjectFile.load(tmp_path / "missing.pscribe")
