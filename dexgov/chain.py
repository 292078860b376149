import typing
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional, Sequence

from ape import chain, networks
from ape.api import AccountAPI, ReceiptAPI
from ape.contracts import ContractInstance
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from ethpm_types import MethodABI
from hexbytes import HexBytes
from web3.auto import w3

from dexgov.exceptions import SimulatedNetworkRequired
from dexgov.networks import is_local_network
from dexgov.utils import check_etherscan_plugin, get_contract_container


class NetworkIdentity(NamedTuple):
    chain_id: int
    name: str


class TransactionReceipt(NamedTuple):
    """A mined transaction, observed at a given confirmation depth."""

    txn_hash: str
    block_number: int
    sender: ChecksumAddress
    confirmations: int
    gas_used: int = 0


class DeployedContract(NamedTuple):
    address: ChecksumAddress
    receipt: TransactionReceipt
    abi: typing.Optional[List[dict]] = None


def function_name(function_signature: str) -> str:
    """Returns 'grantRole' for either 'grantRole' or 'grantRole(bytes32,address)'."""
    return function_signature.split("(", 1)[0].strip()


class ChainClient(ABC):
    """
    Sends transactions, reads state and waits for confirmations on one network.

    Reverted calls raise ape's ContractLogicError with the revert reason unmodified.
    State-changing calls only return once the transaction is confirmed to the
    requested depth.
    """

    @property
    @abstractmethod
    def deployer(self) -> ChecksumAddress:
        """Address of the signing account."""
        raise NotImplementedError

    @abstractmethod
    def current_network(self) -> NetworkIdentity:
        raise NotImplementedError

    @abstractmethod
    def deploy(
        self, contract_name: str, constructor_args: Sequence[Any], confirmations: int
    ) -> DeployedContract:
        raise NotImplementedError

    @abstractmethod
    def call(self, address: ChecksumAddress, function_signature: str, args: Sequence[Any] = ()) -> Any:
        raise NotImplementedError

    @abstractmethod
    def send(
        self,
        address: ChecksumAddress,
        function_signature: str,
        args: Sequence[Any] = (),
        value: int = 0,
        confirmations: int = 1,
    ) -> TransactionReceipt:
        raise NotImplementedError

    @abstractmethod
    def encode_call(
        self, address: ChecksumAddress, function_signature: str, args: Sequence[Any] = ()
    ) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def advance_blocks(self, num_blocks: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def advance_time(self, seconds: int) -> None:
        raise NotImplementedError

    def verify(self, address: ChecksumAddress) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} cannot verify contracts")


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _get_abi(contract_instance: ContractInstance) -> List[dict]:
    """Returns the ABI of a contract instance."""
    contract_abi = list()
    for entry in contract_instance.contract_type.abi:
        contract_abi.append(entry.dict())
    return contract_abi


class ApeChainClient(ChainClient):
    """
    Chain client backed by the connected ape provider and a signing account.
    """

    def __init__(self, account: AccountAPI, simulated: Optional[bool] = None):
        self._account = account
        self.simulated = is_local_network() if simulated is None else simulated
        self.receipts: List[TransactionReceipt] = list()

    @property
    def deployer(self) -> ChecksumAddress:
        return to_checksum_address(self._account.address)

    def current_network(self) -> NetworkIdentity:
        return NetworkIdentity(chain_id=chain.chain_id, name=networks.provider.network.name)

    def _contract_at(self, address: ChecksumAddress) -> ContractInstance:
        return chain.contracts.instance_at(address)

    def _confirmed(self, receipt: ReceiptAPI) -> TransactionReceipt:
        # accepted into a block; now wait for the requested depth
        receipt.await_confirmations()
        result = TransactionReceipt(
            txn_hash=str(receipt.txn_hash),
            block_number=receipt.block_number,
            sender=to_checksum_address(receipt.sender),
            confirmations=chain.blocks.height - receipt.block_number + 1,
            gas_used=receipt.gas_used or 0,
        )
        self.receipts.append(result)
        return result

    def deploy(
        self, contract_name: str, constructor_args: Sequence[Any], confirmations: int
    ) -> DeployedContract:
        container = get_contract_container(contract_name)
        if constructor_args:
            pretty_args = "\n\t".join(str(arg) for arg in constructor_args)
            print(f"\nDeploying {contract_name} with arguments:\n\t{pretty_args}")
        else:
            print(f"\nDeploying {contract_name} with no arguments")

        instance = self._account.deploy(
            container,
            *constructor_args,
            required_confirmations=confirmations,
        )
        receipt = self._confirmed(instance.receipt)
        return DeployedContract(
            address=to_checksum_address(instance.address),
            receipt=receipt,
            abi=_get_abi(instance),
        )

    def call(self, address: ChecksumAddress, function_signature: str, args: Sequence[Any] = ()) -> Any:
        instance = self._contract_at(address)
        return instance.call_view_method(function_name(function_signature), *args)

    def send(
        self,
        address: ChecksumAddress,
        function_signature: str,
        args: Sequence[Any] = (),
        value: int = 0,
        confirmations: int = 1,
    ) -> TransactionReceipt:
        instance = self._contract_at(address)
        method = getattr(instance, function_name(function_signature))
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {instance.contract_type.name}"
            f"[{instance.address[:10]}].{function_name(function_signature)}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)

        receipt = method(
            *args,
            sender=self._account,
            value=value,
            required_confirmations=confirmations,
        )
        return self._confirmed(receipt)

    def encode_call(
        self, address: ChecksumAddress, function_signature: str, args: Sequence[Any] = ()
    ) -> bytes:
        instance = self._contract_at(address)
        method = getattr(instance, function_name(function_signature))
        return HexBytes(method.encode_input(*args))

    def advance_blocks(self, num_blocks: int) -> None:
        if not self.simulated:
            raise SimulatedNetworkRequired(
                f"Cannot mine blocks on live network '{networks.provider.network.name}'"
            )
        print("Moving blocks...")
        chain.mine(num_blocks)
        print(f"Moved {num_blocks} blocks")

    def advance_time(self, seconds: int) -> None:
        if not self.simulated:
            raise SimulatedNetworkRequired(
                f"Cannot move time on live network '{networks.provider.network.name}'"
            )
        print("Moving time...")
        chain.pending_timestamp += seconds
        print(f"Moved forward in time {seconds} seconds")

    def verify(self, address: ChecksumAddress) -> None:
        check_etherscan_plugin()
        explorer = networks.provider.network.explorer
        print(f"(i) Verifying contract at {address}...")
        explorer.publish_contract(address)
