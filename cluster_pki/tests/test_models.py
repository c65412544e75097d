"""Tests for value types."""

import pytest

from cluster_pki.lib.models import NodeRef, SanParseResult, Subject, is_valid_ip_address


class TestIsValidIpAddress:
    """Tests for IP literal classification."""

    @pytest.mark.parametrize("address", ["10.0.0.5", "::1", "2001:db8::1", "192.168.1.255"])
    def test_ip_literals(self, address: str) -> None:
        assert is_valid_ip_address(address)

    @pytest.mark.parametrize(
        "address", ["kafka.example.com", "localhost", "10.0.0", "10.0.0.256", "", "1.2.3.4.nip.io"]
    )
    def test_not_ip_literals(self, address: str) -> None:
        assert not is_valid_ip_address(address)


class TestSubjectBuilder:
    """Tests for Subject.builder()."""

    def test_add_address_classifies(self) -> None:
        subject = (
            Subject.builder()
            .with_common_name("cn")
            .add_address("10.0.0.5")
            .add_address("kafka.example.com")
            .build()
        )
        assert subject.ip_addresses == {"10.0.0.5"}
        assert subject.dns_names == {"kafka.example.com"}

    def test_subject_alt_names_combines_both_kinds(self) -> None:
        subject = (
            Subject.builder().with_common_name("cn").add_dns_name("a").add_ip_address("::1").build()
        )
        assert subject.subject_alt_names() == {"a", "::1"}

    def test_duplicates_collapse(self) -> None:
        subject = Subject.builder().with_common_name("cn").add_dns_names(["a", "a", "b"]).build()
        assert subject.dns_names == {"a", "b"}

    def test_ip_address_is_canonicalized(self) -> None:
        subject = Subject.builder().with_common_name("cn").add_ip_address("2001:DB8:0::1").build()
        assert subject.ip_addresses == {"2001:db8::1"}

    def test_invalid_ip_address_rejected(self) -> None:
        with pytest.raises(ValueError):
            Subject.builder().with_common_name("cn").add_ip_address("not-an-ip")

    def test_common_name_required(self) -> None:
        with pytest.raises(ValueError, match="common name"):
            Subject.builder().add_dns_name("a").build()


class TestSanParseResult:
    """Tests for SanParseResult."""

    def test_matches_is_set_equality(self) -> None:
        result = SanParseResult.of(["b", "a"])
        assert result.matches(frozenset({"a", "b"}))
        assert not result.matches(frozenset({"a"}))
        assert not result.matches(frozenset({"a", "b", "c"}))

    def test_unparsable_never_matches(self) -> None:
        assert not SanParseResult.unparsable().matches(frozenset())


def test_node_ref_is_hashable() -> None:
    nodes = {NodeRef(0, "pod-0", True), NodeRef(0, "pod-0", True)}
    assert len(nodes) == 1
