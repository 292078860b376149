import typing
from abc import ABC, abstractmethod
from typing import Any, List

from ape.utils import ZERO_ADDRESS

from dexgov.constants import DEPLOYER_VARIABLE, ZERO_ADDRESS_VARIABLE
from dexgov.exceptions import DeploymentConfigError

if typing.TYPE_CHECKING:
    from dexgov.context import PipelineContext


class VariableContext:
    def __init__(self, contract_names: List[str], constants: typing.Dict[str, Any] = None):
        self.contract_names = contract_names or list()
        self.constants = constants or dict()


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, context: "PipelineContext") -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result

    def __str__(self):
        return f"{self.VARIABLE_PREFIX}{self.name}"

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError


class DeployerAccount(Variable):
    name = DEPLOYER_VARIABLE

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.name

    def resolve(self, context: "PipelineContext") -> Any:
        return context.deployer


class ZeroAddress(Variable):
    name = ZERO_ADDRESS_VARIABLE

    @classmethod
    def is_zero_address(cls, value: str) -> bool:
        return value == cls.name

    def resolve(self, context: "PipelineContext") -> Any:
        return ZERO_ADDRESS


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise DeploymentConfigError(f"Constant '{constant_name}' not found in pipeline file.")
        self._name = constant_name

    @property
    def name(self) -> str:
        return self._name

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a pipeline constant."""
        return value.isupper()

    def resolve(self, context: "PipelineContext") -> Any:
        return self.constant_value


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise DeploymentConfigError(f"Contract name {contract_name} not found")
        self.contract_name = contract_name

    @property
    def name(self) -> str:
        return self.contract_name

    def resolve(self, context: "PipelineContext") -> Any:
        """Resolves a contract address."""
        return context.address_of(self.contract_name)


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif ZeroAddress.is_zero_address(variable):
        return ZeroAddress()
    elif variable in context.contract_names:
        return ContractName(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def resolve_param(value: Any, context: "PipelineContext") -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, (list, tuple)):
        return [resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def referenced_contracts(value: Any) -> List[str]:
    """Returns the contract names a (processed) parameter value depends on, in order."""
    if isinstance(value, (list, tuple)):
        names = list()
        for v in value:
            for name in referenced_contracts(v):
                if name not in names:
                    names.append(name)
        return names

    if isinstance(value, ContractName):
        return [value.contract_name]

    return list()
