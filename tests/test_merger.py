"""
Tests for the configured merger and its metrics.
"""

import logging

import pytest
from prometheus_client import CollectorRegistry

from hcl_merge import (
    DocumentParser, DuplicateBlockError, DuplicatePolicy,
    HCLMerger, MergeConfig, ParseError, merge
)


BASE = '''variable "region" {
  type    = string
  default = "us-east-1"
}

variable "size" {
  default = "small"
}
'''

OVERRIDE = '''variable "region" {
  default = "eu-west-1"
}

output "region" {
  value = var.region
}
'''

MERGED = '''variable "region" {
  default = "eu-west-1"
  type    = string
}

variable "size" {
  default = "small"
}

output "region" {
  value = var.region
}
'''


@pytest.fixture
def registry():
    return CollectorRegistry()


def test_merge_matches_function(registry):
    merger = HCLMerger(registry=registry)
    assert merger.merge(BASE, OVERRIDE) == MERGED
    assert merge(BASE, OVERRIDE) == MERGED


def test_metrics_recorded(registry):
    merger = HCLMerger(registry=registry)
    merger.merge(BASE, OVERRIDE)

    assert registry.get_sample_value('hcl_merge_total', {'status': 'ok'}) == 1.0
    assert registry.get_sample_value('hcl_merge_duration_seconds_count') == 1.0
    assert registry.get_sample_value('hcl_merge_blocks_total', {'origin': 'matched'}) == 1.0
    assert registry.get_sample_value('hcl_merge_blocks_total', {'origin': 'a_only'}) == 1.0
    assert registry.get_sample_value('hcl_merge_blocks_total', {'origin': 'b_only'}) == 1.0


def test_parse_error_recorded(registry):
    merger = HCLMerger(registry=registry)
    with pytest.raises(ParseError) as excinfo:
        merger.merge(BASE, 'variable "x" {')
    assert excinfo.value.source_name == "<b>"
    assert str(excinfo.value).startswith("error parsing hcl document: <b>:1,14:")
    assert registry.get_sample_value('hcl_merge_total', {'status': 'parse_error'}) == 1.0
    assert merger.stats()['parse_error'] == 1
    assert merger.stats()['ok'] == 0


def test_duplicate_policy_from_config(registry):
    merger = HCLMerger(MergeConfig(duplicate_blocks=DuplicatePolicy.ERROR), registry=registry)
    with pytest.raises(DuplicateBlockError):
        merger.merge(BASE + BASE, OVERRIDE)
    assert registry.get_sample_value('hcl_merge_total', {'status': 'merge_error'}) == 1.0


def test_duplicate_policy_last_by_default(registry):
    merger = HCLMerger(registry=registry)
    out = merger.merge(BASE + "\n" + BASE, OVERRIDE)
    assert out.count('variable "region"') == 2


def test_metrics_disabled(registry):
    merger = HCLMerger(MergeConfig(metrics_enabled=False), registry=registry)
    assert merger.merge(BASE, OVERRIDE) == MERGED
    assert registry.get_sample_value('hcl_merge_total', {'status': 'ok'}) is None
    assert merger.stats()['ok'] == 1


def test_instances_do_not_collide():
    first = HCLMerger()
    second = HCLMerger()
    first.merge(BASE, OVERRIDE)
    second.merge(BASE, OVERRIDE)
    assert first.stats()['ok'] == 1
    assert second.stats()['ok'] == 1


def test_merge_documents_does_not_mutate(registry):
    merger = HCLMerger(registry=registry)
    a = DocumentParser.parse(BASE)
    b = DocumentParser.parse(OVERRIDE)
    a_before, b_before = a.copy(), b.copy()
    out = merger.merge_documents(a, b)
    assert out.keys() == ["variable.region", "variable.size", "output.region"]
    assert a == a_before
    assert b == b_before


def test_merge_files(tmp_path, registry):
    a_path = tmp_path / "variables.tf"
    b_path = tmp_path / "override.tf"
    output = tmp_path / "build" / "merged.tf"
    a_path.write_text(BASE)
    b_path.write_text(OVERRIDE)

    merger = HCLMerger(registry=registry)
    content = merger.merge_files(a_path, b_path, output=output)

    assert content == MERGED
    assert output.read_text() == MERGED


def test_merge_files_without_output(tmp_path, registry):
    a_path = tmp_path / "a.tf"
    b_path = tmp_path / "b.tf"
    a_path.write_text(BASE)
    b_path.write_text("")
    assert HCLMerger(registry=registry).merge_files(a_path, b_path) == BASE


def test_merge_files_parse_error_names_file(tmp_path, registry):
    a_path = tmp_path / "base.tf"
    b_path = tmp_path / "override.tf"
    a_path.write_text('variable "a" {')
    b_path.write_text(OVERRIDE)

    merger = HCLMerger(registry=registry)
    with pytest.raises(ParseError) as excinfo:
        merger.merge_files(a_path, b_path)

    assert excinfo.value.source_name == str(a_path)
    assert str(excinfo.value).startswith(f"error parsing hcl document: {a_path}:1,14:")
    assert merger.stats()['parse_error'] == 1


def test_nesting_too_deep_recorded_as_parse_error(registry):
    depth = 1200
    text = "b {\n" * depth + "}\n" * depth

    merger = HCLMerger(registry=registry)
    with pytest.raises(ParseError):
        merger.merge(text, text)

    assert registry.get_sample_value('hcl_merge_total', {'status': 'parse_error'}) == 1.0
    assert registry.get_sample_value('hcl_merge_total', {'status': 'ok'}) is None
    assert merger.stats()['ok'] == 0


def test_merger_leaves_logger_level_alone(registry):
    package_logger = logging.getLogger("hcl_merge")
    previous = package_logger.level
    HCLMerger(MergeConfig(log_level='ERROR'), registry=registry)
    assert package_logger.level == previous
