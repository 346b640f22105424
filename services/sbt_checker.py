"""
SBT Checker Service
Resolves pending SBT mints from the events emitted by the SBT contract
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional

from models import CONFIRMED, FAILED, PENDING
from services.multibaas_client import MethodCallResponse, to_int

logger = logging.getLogger(__name__)

ISSUED_EVENT = 'Issued'
TRANSFER_EVENT = 'Transfer'
TOKEN_URI_METHOD = 'tokenURI'
# everything above is rejected by MultiBaas as an invalid request
DEFAULT_EVENTS_PAGE_LIMIT = 50


class SbtCheckerError(Exception):
    pass


class SbtCheckerRepoRetrievalError(SbtCheckerError):
    pass


class SbtCheckerApiRetrievalError(SbtCheckerError):
    pass


class SbtCheckerRepoUpdateError(SbtCheckerError):
    pass


class SbtCheckerBatchError(SbtCheckerError):
    """Some SBTs of a pass could not be checked; the others were"""

    def __init__(self, errors):
        super().__init__(f"{len(errors)} pending SBT(s) could not be checked")
        self.errors = errors


@dataclass
class SbtEvent:
    name: str
    tx_hash: str
    tx_block: Optional[int]
    triggered_at: datetime
    from_address: str
    to_address: str
    token_id: int
    burn_auth: Optional[int] = None


def parse_timestamp(value):
    # MultiBaas uses RFC 3339 timestamps with a trailing Z
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


def sbt_event_from(raw) -> Optional[SbtEvent]:
    """Parse a raw MultiBaas event. Events other than Issued and Transfer, and malformed ones, are ignored."""
    event = raw.get('event') or {}
    name = event.get('name')
    if name not in (ISSUED_EVENT, TRANSFER_EVENT):
        return None

    inputs = {i.get('name'): i.get('value') for i in event.get('inputs', [])}
    transaction = raw.get('transaction') or {}
    try:
        return SbtEvent(
            name=name,
            tx_hash=transaction.get('txHash'),
            tx_block=transaction.get('blockNumber'),
            triggered_at=parse_timestamp(raw['triggeredAt']),
            from_address=inputs.get('from'),
            to_address=inputs.get('to'),
            token_id=int(inputs['tokenId']),
            burn_auth=to_int(inputs.get('burnAuth')) if name == ISSUED_EVENT else None,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Skipping malformed {name} event of transaction {transaction.get('txHash')}: {e!r}")
        return None


class SbtChecker:
    """Moves pending SBT mints to confirmed or failed"""

    def __init__(self, sbt_repo, multibaas_client, clock, discarded_tx_grace_period_seconds,
                 chain='ethereum', contract_address_or_alias='sbt', contract_label='sbt',
                 events_page_limit=DEFAULT_EVENTS_PAGE_LIMIT, logger=logger):
        self.sbt_repo = sbt_repo
        self.multibaas_client = multibaas_client
        self.clock = clock
        self.discarded_tx_grace_period = timedelta(seconds=discarded_tx_grace_period_seconds)
        self.chain = chain
        self.contract_address_or_alias = contract_address_or_alias
        self.contract_label = contract_label
        self.events_page_limit = events_page_limit
        self.logger = logger

    def update_pending(self):
        pending_sbts = self._get_all_known_pending_sbts()
        if not pending_sbts:
            self.logger.info("No pending SBTs to check")
            return

        self.logger.info(f"Got {len(pending_sbts)} pending SBTs to check")

        # Only the latest page of events is looked at. A pending mint whose
        # Issued event fell off the page would eventually be marked failed.
        events = self._check_recent_events()
        issued_events_by_tx_hash = {e.tx_hash: e for e in events if e.name == ISSUED_EVENT}

        errors = []
        for sbt in pending_sbts:
            self.logger.info(f"Checking pending SBT {sbt.tx_hash}")
            try:
                self._check(sbt, issued_events_by_tx_hash.get(sbt.tx_hash))
            except SbtCheckerError as e:
                self.logger.error(f"Error checking SBT {sbt.tx_hash}: {e}", exc_info=e)
                errors.append(e)

        if errors:
            raise SbtCheckerBatchError(errors)

    def _check(self, sbt, issued_event):
        updated = replace(sbt, status=self._new_sbt_status(sbt, issued_event))
        if issued_event is not None:
            updated.token_id = issued_event.token_id
            updated.issued_at = issued_event.triggered_at
            if sbt.token_uri is None or sbt.token_id != issued_event.token_id:
                updated.token_uri = self._get_token_uri(issued_event.token_id)

        if updated != sbt:
            self._update_sbt_state(sbt, updated)

    def _get_token_uri(self, token_id):
        try:
            result = self.multibaas_client.call_contract_function(
                self.chain,
                self.contract_address_or_alias,
                self.contract_label,
                TOKEN_URI_METHOD,
                [str(token_id)],
            )
        except Exception as e:
            raise SbtCheckerApiRetrievalError(f"Error retrieving token URI of token {token_id}") from e

        self.logger.info(f"Token URI function call result: {result}")
        if not isinstance(result, MethodCallResponse):
            raise SbtCheckerApiRetrievalError(f"Expected MethodCallResponse, got {result.kind}")
        return result.output

    def _check_recent_events(self) -> List[SbtEvent]:
        try:
            self.logger.debug(f"Listing events of contract {self.contract_label}")
            raw_events = self.multibaas_client.list_events(
                self.chain,
                contract_label=self.contract_label,
                limit=self.events_page_limit,
            )
            events = [e for e in map(sbt_event_from, raw_events) if e is not None]
        except Exception as e:
            raise SbtCheckerApiRetrievalError("Error retrieving events") from e
        self.logger.debug(f"Got {len(events)} SBT events")
        return events

    def _get_all_known_pending_sbts(self):
        try:
            return self.sbt_repo.get_all_pending()
        except Exception as e:
            raise SbtCheckerRepoRetrievalError("Error getting all pending SBTs") from e

    def _update_sbt_state(self, sbt, updated):
        updated.updated_at = self.clock.now()
        self.logger.info(f"Updating SBT {sbt.tx_hash}: {sbt.status} -> {updated.status}")
        try:
            self.sbt_repo.update(updated)
        except Exception as e:
            raise SbtCheckerRepoUpdateError(f"Error updating SBT {sbt.tx_hash}") from e
        self.logger.info(f"Updated SBT {sbt.tx_hash}")

    def _new_sbt_status(self, sbt, issued_event):
        if issued_event is None:
            # if no Issued event was found after grace period, we assume the transaction was discarded
            cutoff = sbt.created_at + self.discarded_tx_grace_period
            return FAILED if self.clock.now() > cutoff else PENDING
        return CONFIRMED
