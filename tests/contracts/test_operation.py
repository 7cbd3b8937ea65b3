# tests/contracts/test_operation.py
"""Tests for OperationContract, ContractBuilder and error policies."""

import pytest

from brainpipe.contracts.capabilities import VALID_CAPABILITIES, Capability, ModelReference, is_valid_capability
from brainpipe.contracts.errors import ConfigurationError
from brainpipe.contracts.operation import (
    Cardinality,
    ContractBuilder,
    Operation,
    OperationContract,
    check_error_policy,
    should_ignore,
)
from brainpipe.contracts.schema import FieldSpec
from brainpipe.contracts.types import STRING
from brainpipe.core.models import ModelConfig
from tests.conftest import make_operation


class TestCardinality:
    def test_only_one_to_one_keeps_count(self) -> None:
        assert not Cardinality.ONE_TO_ONE.allows_count_change
        assert Cardinality.FILTER.allows_count_change
        assert Cardinality.EXPAND.allows_count_change
        assert Cardinality.COLLAPSE.allows_count_change


class TestContractBuilder:
    """Fluent construction of contracts."""

    def test_builds_declarations(self) -> None:
        contract = (
            ContractBuilder("shout")
            .reads("text", str)
            .reads("lang", optional=True)
            .sets("shout", str)
            .deletes("draft", optional=True)
            .timeout(2.5)
            .build()
        )

        assert contract.name == "shout"
        assert dict(contract.reads) == {"text": FieldSpec(STRING), "lang": FieldSpec(None, True)}
        assert dict(contract.sets) == {"shout": FieldSpec(STRING)}
        assert dict(contract.deletes) == {"draft": True}
        assert contract.cardinality is Cardinality.ONE_TO_ONE
        assert contract.timeout == 2.5
        assert contract.error_policy is False

    def test_cardinality_from_string(self) -> None:
        contract = ContractBuilder("x").cardinality("expand").build()
        assert contract.cardinality is Cardinality.EXPAND
        assert contract.allows_count_change

    def test_requires_model(self) -> None:
        contract = ContractBuilder("x").requires_model(Capability.TEXT_TO_TEXT).build()
        assert contract.required_capability == "text_to_text"

    def test_ignore_errors_defaults_to_all(self) -> None:
        assert ContractBuilder("x").ignore_errors().build().error_policy is True

    def test_ignore_errors_rejects_non_callable(self) -> None:
        with pytest.raises(ConfigurationError, match="bool or a callable"):
            ContractBuilder("x").ignore_errors("yes")  # type: ignore[arg-type]


class TestOperationContractValidation:
    """Contracts reject inconsistent declarations at construction."""

    def test_set_and_delete_overlap(self) -> None:
        with pytest.raises(ConfigurationError, match="both sets and deletes: a"):
            ContractBuilder("x").sets("a").deletes("a").build()

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout must be positive"):
            ContractBuilder("x").timeout(0).build()

    def test_unknown_capability(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown capability 'telepathy'"):
            ContractBuilder("x").requires_model("telepathy").build()

    def test_declarations_are_read_only(self) -> None:
        contract = ContractBuilder("x").reads("a").build()
        with pytest.raises(TypeError):
            contract.reads["b"] = FieldSpec()  # type: ignore[index]

    def test_contract_is_frozen(self) -> None:
        contract = OperationContract(name="x")
        with pytest.raises(AttributeError):
            contract.name = "y"  # type: ignore[misc]


class TestErrorPolicy:
    def test_bool_policies(self) -> None:
        assert should_ignore(True, ValueError())
        assert not should_ignore(False, ValueError())

    def test_predicate_policy(self) -> None:
        def policy(error: BaseException) -> bool:
            return isinstance(error, ValueError)

        assert should_ignore(policy, ValueError())
        assert not should_ignore(policy, KeyError())

    def test_check_error_policy_passes_valid_values(self) -> None:
        assert check_error_policy(True) is True
        assert callable(check_error_policy(lambda e: False))

    def test_check_error_policy_rejects_other_values(self) -> None:
        with pytest.raises(ConfigurationError):
            check_error_policy(1)


class TestCapabilities:
    def test_valid_capabilities(self) -> None:
        assert len(VALID_CAPABILITIES) == 8
        assert is_valid_capability("image_edit")
        assert not is_valid_capability("mind_reading")

    def test_model_config_is_a_model_reference(self) -> None:
        config = ModelConfig(name="m", provider="p", model="x", capabilities=["text_to_text"])
        assert isinstance(config, ModelReference)


class TestOperationProtocol:
    def test_callable_operation_satisfies_protocol(self) -> None:
        op = make_operation("noop", lambda records: records)
        assert isinstance(op, Operation)

    def test_arbitrary_object_does_not(self) -> None:
        assert not isinstance(object(), Operation)
