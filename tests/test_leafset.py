"""
Tests for leaf sets loaded from allowlists and EU snapshots.
"""

import json
import os

import pytest

from trustroot.field.codec import hex_to_field
from trustroot.merkle.leafset import LeafSet
from trustroot.protocol.errors import InputError, NotFoundError

from conftest import AA, BB, CC


def _write(tmp_dir, name, data):
    path = os.path.join(tmp_dir, name)
    with open(path, "w", encoding="utf-8") as f:
        if isinstance(data, str):
            f.write(data)
        else:
            json.dump(data, f)
    return path


class TestAllowlist:
    def test_order_preserved(self):
        ls = LeafSet.from_allowlist({"cert_fingerprints": [CC, AA, BB]})
        assert ls.fingerprints == (CC, AA, BB)
        assert ls.index_of(AA) == 1
        assert ls.to_fields() == [hex_to_field(CC), hex_to_field(AA), hex_to_field(BB)]

    def test_normalized(self):
        ls = LeafSet.from_fingerprints(["0x" + AA.upper()])
        assert ls.fingerprints == (AA,)
        assert "0x" + AA in ls

    def test_empty_rejected(self):
        with pytest.raises(InputError, match="empty allowlist"):
            LeafSet.from_allowlist({"cert_fingerprints": []})

    def test_duplicate_rejected(self):
        with pytest.raises(InputError, match="Duplicate"):
            LeafSet.from_allowlist({"cert_fingerprints": [AA, BB, AA]})

    def test_duplicate_after_normalization_rejected(self):
        with pytest.raises(InputError):
            LeafSet.from_fingerprints([AA, "0x" + AA.upper()])

    def test_malformed_rejected(self):
        with pytest.raises(InputError):
            LeafSet.from_allowlist({"cert_fingerprints": ["abcd"]})
        with pytest.raises(InputError):
            LeafSet.from_allowlist({"fingerprints": [AA]})
        with pytest.raises(InputError):
            LeafSet.from_allowlist({"cert_fingerprints": AA})

    def test_unknown_fingerprint(self):
        ls = LeafSet.from_fingerprints([AA])
        with pytest.raises(NotFoundError) as exc:
            ls.index_of(BB)
        assert exc.value.fingerprint == BB
        assert BB not in ls

    def test_round_trip_allowlist_document(self):
        ls = LeafSet.from_fingerprints([AA, BB])
        assert LeafSet.from_allowlist(ls.to_allowlist()) == ls

    def test_from_file(self, tmp_dir):
        path = _write(tmp_dir, "allowlist.json", {"cert_fingerprints": [AA, BB]})
        ls = LeafSet.from_allowlist_file(path)
        assert len(ls) == 2
        assert ls.label == "allowlist.json"

    def test_missing_file(self, tmp_dir):
        with pytest.raises(NotFoundError):
            LeafSet.from_allowlist_file(os.path.join(tmp_dir, "nope.json"))

    def test_invalid_json(self, tmp_dir):
        path = _write(tmp_dir, "bad.json", "{not json")
        with pytest.raises(InputError):
            LeafSet.from_allowlist_file(path)


class TestEUSnapshot:
    @pytest.fixture
    def snapshot(self):
        return {
            "snapshot_date": "2025-01-15",
            "lotl_hash": "ff" * 32,
            "tsps": [
                {"name": "TSP One", "certificates": [{"fingerprint": AA}, {"fingerprint": BB}]},
                {"name": "TSP Two", "certificates": [{"fingerprint": BB}, {"fingerprint": CC}]},
            ],
        }

    def test_flattened_in_order_first_occurrence_wins(self, snapshot, caplog):
        ls = LeafSet.from_eu_snapshot(snapshot)
        assert ls.fingerprints == (AA, BB, CC)
        assert ls.label == "2025-01-15"
        assert ls.metadata["lotl_hash"] == "ff" * 32
        assert "more than one provider" in caplog.text

    def test_empty_snapshot_rejected(self):
        with pytest.raises(InputError):
            LeafSet.from_eu_snapshot({"tsps": [{"certificates": []}]})
        with pytest.raises(InputError):
            LeafSet.from_eu_snapshot({"providers": []})

    @pytest.mark.parametrize(
        "tsps",
        [
            ["not a provider"],
            [[{"fingerprint": AA}]],
            [{"certificates": "aa"}],
            [{"certificates": [AA]}],
            [{"certificates": [["fingerprint", AA]]}],
            [{"certificates": [{"fingerprint": 42}]}],
        ],
    )
    def test_malformed_entries_rejected(self, tsps):
        with pytest.raises(InputError):
            LeafSet.from_eu_snapshot({"tsps": tsps})

    def test_from_file(self, tmp_dir, snapshot):
        path = _write(tmp_dir, "eu.json", snapshot)
        assert len(LeafSet.from_eu_snapshot_file(path)) == 3
