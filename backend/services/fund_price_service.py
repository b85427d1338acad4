"""Fund price service - pulls the latest TSP fund prices."""

import logging
from typing import Optional

from integrations.fund_price_protocol import FundPriceSet, RetirementPriceProvider
from utils.fund_codes import FundCode

logger = logging.getLogger(__name__)

JOB_ID = "tsp-price-refresh"


class FundPriceService:
    """Fetches the latest daily price set for the TSP fund family.

    Writing the ``fund_price_snapshots`` cache belongs to the feed ingestion
    side; this job only fetches and reports.
    """

    def __init__(self, provider: Optional[RetirementPriceProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> RetirementPriceProvider:
        if self._provider is None:
            from integrations.tsp_price_client import TspPriceClient

            self._provider = TspPriceClient()
        return self._provider

    def refresh_latest(self) -> Optional[FundPriceSet]:
        """Fetch the latest available fund prices.

        Returns:
            The price set, or None when the feed returned nothing.

        Raises:
            ProviderError: Fetch failures propagate so the runner can retry.
        """
        logger.info("Starting TSP fund price refresh")
        price_set = self.provider.get_latest_prices()

        if price_set is None or price_set.is_empty():
            logger.warning("No TSP fund prices returned from %s", self.provider.provider_name)
            return None

        logger.info(
            "Retrieved TSP prices for %s: %s",
            price_set.price_date,
            ", ".join(
                f"{code.value}={price_set.prices[code]:.4f}"
                for code in FundCode
                if code in price_set.prices
            ),
        )
        missing = [code.value for code in FundCode if code not in price_set.prices]
        if missing:
            logger.warning("TSP feed missing prices for: %s", ", ".join(missing))
        return price_set
