"""Device record building: correlates all facts about one SCSI device"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import (
    AsmDisk,
    Capacity,
    ControllerMap,
    DeviceRecord,
    DmDevice,
    ERROR_GETTING_SIZE,
    NO_BLOCK_DEVICE,
    NO_MULTIPATH,
    NO_WWID,
    NOT_AVAILABLE,
    ScsiAddress,
    StorageMembership,
)
from .providers import AsmRules, ScsiIdProvider, SysfsProvider
from .providers.dmsetup import find_holder, volume_group_name


@dataclass(frozen=True)
class RunContext:
    """Facts fetched once per run and shared read-only by all record builders"""

    hostname: str
    controller_map: ControllerMap = field(default_factory=ControllerMap)
    asm_rules: AsmRules = field(default_factory=AsmRules)
    dm_devices: Tuple[DmDevice, ...] = ()
    dm_holders: Dict[str, str] = field(default_factory=dict)
    # None unless ASM details were requested
    asm_disks: Optional[Dict[str, AsmDisk]] = None
    # Resolve WWIDs of devices without a block device too
    wwid_without_block: bool = False

    @property
    def asm_requested(self) -> bool:
        return self.asm_disks is not None


class DeviceRecordBuilder:
    """Builds one DeviceRecord per SCSI address"""

    def __init__(self, sysfs: SysfsProvider, scsi_id: ScsiIdProvider,
                 logger: Optional[logging.Logger] = None):
        """Initialize the builder

        Args:
            sysfs: sysfs provider
            scsi_id: WWID resolver
            logger: Logger instance
        """
        self.sysfs = sysfs
        self.scsi_id = scsi_id
        self.logger = logger or logging.getLogger(__name__)

    def build(self, address: ScsiAddress, context: RunContext) -> DeviceRecord:
        """Build the record of one device

        Missing facts degrade to sentinel values; this never raises for a
        device that disappeared or lacks attributes.
        """
        controller = context.controller_map.controller_for_host(address.host)

        generic_device = self.sysfs.generic_device(address)
        block_device = self.sysfs.block_device(address)

        vendor = self.sysfs.vendor(address) or NOT_AVAILABLE
        model = self.sysfs.model(address) or NOT_AVAILABLE

        wwid = NO_WWID
        if block_device or context.wwid_without_block:
            wwid = self._resolve_wwid(generic_device)

        if not block_device:
            self.logger.debug(f"{address}: no block device ({vendor} {model})")
            return DeviceRecord(
                hostname=context.hostname,
                address=address,
                controller=controller,
                vendor=vendor,
                model=model,
                generic_device=generic_device,
                block_device=NO_BLOCK_DEVICE,
                wwid=wwid,
            )

        return DeviceRecord(
            hostname=context.hostname,
            address=address,
            controller=controller,
            vendor=vendor,
            model=model,
            generic_device=generic_device,
            block_device=block_device,
            wwid=wwid,
            storage=self._classify(block_device, wwid, context),
            multipath=context.dm_holders.get(block_device, NO_MULTIPATH),
            capacity=self._capacity(block_device),
        )

    def _resolve_wwid(self, generic_device: Optional[str]) -> str:
        if not generic_device:
            return NO_WWID
        return self.scsi_id.get_wwid(generic_device) or NO_WWID

    def _classify(self, block_device: str, wwid: str, context: RunContext) -> StorageMembership:
        """Classify a device as ASM member, LVM member or neither

        The ASM udev rules are checked first, then the device mapper
        dependencies.
        """
        asm_name = context.asm_rules.lookup(wwid) if wwid != NO_WWID else None
        if asm_name:
            asm_disk = None
            if context.asm_requested:
                asm_disk = context.asm_disks.get(asm_name)
                if asm_disk is None:
                    self.logger.debug(f"ASM device {asm_name} not in the ASM disk listing")
            return StorageMembership.asm(asm_name, asm_disk)

        holder = find_holder(list(context.dm_devices), block_device)
        if holder:
            return StorageMembership.lvm(volume_group_name(holder.name))

        return StorageMembership.unclassified()

    def _capacity(self, block_device: str):
        sectors = self.sysfs.block_size_sectors(block_device)
        if sectors is None:
            self.logger.debug(f"Cannot read the size of {block_device}")
            return ERROR_GETTING_SIZE
        return Capacity(sectors)

    def build_all(self, addresses: List[ScsiAddress], context: RunContext,
                  workers: int = 1) -> List[DeviceRecord]:
        """Build records for many devices, optionally in parallel

        Records come back in the order of `addresses`, whatever order the
        workers finish in. A device whose record cannot be built is logged
        and left out.
        """
        results: Dict[ScsiAddress, DeviceRecord] = {}

        if workers <= 1 or len(addresses) <= 1:
            for address in addresses:
                record = self._build_logged(address, context)
                if record:
                    results[address] = record
        else:
            with ThreadPoolExecutor(max_workers=min(workers, len(addresses))) as executor:
                futures = {
                    address: executor.submit(self._build_logged, address, context)
                    for address in addresses
                }
                for address, future in futures.items():
                    record = future.result()
                    if record:
                        results[address] = record

        return [results[address] for address in addresses if address in results]

    def _build_logged(self, address: ScsiAddress, context: RunContext) -> Optional[DeviceRecord]:
        try:
            return self.build(address, context)
        except Exception as e:
            self.logger.error(f"Failed to build record for {address}: {e}")
            return None
