"""Unit tests for the tariff calculator."""

from decimal import Decimal

import pytest

from rentsplit.errors import ConfigurationError
from rentsplit.models import FlatFee, RateTable, TariffFamily, TaxBase, TaxRule, Tier, UtilityKind
from rentsplit.services.tariff_service import MONTHLY_FEE, compute_charges, progressive_walk


class TestProgressiveTiers:
    """Test the progressive tier walk."""

    def test_usage_within_first_tier(self, calculator, three_tier_table):
        """Test 150 kWh stays in the first tier and below the tax threshold."""
        breakdown = calculator.compute_charges(three_tier_table, 150)

        assert breakdown["Energy Charge"] == Decimal("30.00")
        assert breakdown["Tax"] == Decimal("0.00")
        assert breakdown.total == Decimal("30.00")

    def test_usage_across_two_tiers_with_tax(self, calculator, three_tier_table):
        """Test 350 kWh: 200 x 0.20 + 150 x 0.30 plus 5% tax."""
        breakdown = calculator.compute_charges(three_tier_table, 350)

        assert breakdown["Energy Charge"] == Decimal("85.00")
        assert breakdown["Tax"] == Decimal("4.25")
        assert breakdown.total == Decimal("89.25")

    def test_usage_reaches_unbounded_tier(self, calculator, three_tier_table):
        """Test usage above the last bound is billed at the last rate."""
        breakdown = calculator.compute_charges(three_tier_table, 500)

        # 40 + 60 + 40 = 140, tax 7.00
        assert breakdown["Energy Charge"] == Decimal("140.00")
        assert breakdown.total == Decimal("147.00")

    def test_total_is_non_decreasing_in_usage(self, calculator, three_tier_table):
        """Test more usage never costs less."""
        totals = [calculator.compute_charges(three_tier_table, u).total for u in range(0, 801, 7)]

        assert totals == sorted(totals)

    def test_tax_threshold_boundary(self, calculator, three_tier_table):
        """Test tax is zero at the threshold and applies just above it."""
        at_threshold = calculator.compute_charges(three_tier_table, 300)
        above_threshold = calculator.compute_charges(three_tier_table, 301)

        assert at_threshold["Tax"] == Decimal("0.00")
        assert at_threshold.total == Decimal("70.00")
        assert above_threshold["Tax"] == Decimal("3.52")
        assert above_threshold.total == Decimal("73.82")

    def test_negative_usage_clamped(self, calculator, three_tier_table, caplog):
        """Test negative usage is treated as zero and logged."""
        breakdown = calculator.compute_charges(three_tier_table, -5)

        assert breakdown.usage == Decimal("0")
        assert breakdown.total == Decimal("0.00")
        assert "clamped to 0" in caplog.text

    def test_float_usage_converted_exactly(self, calculator, three_tier_table):
        """Test float input does not leak binary rounding."""
        breakdown = calculator.compute_charges(three_tier_table, 0.1)

        assert breakdown.usage == Decimal("0.1")
        assert breakdown.total == Decimal("0.02")

    def test_generated_tier_labels(self, calculator):
        """Test unlabelled tiers get usage range labels."""
        table = RateTable(
            provider_id="plain",
            name="Plain",
            short_name="Plain",
            utility_kind=UtilityKind.WATER,
            family=TariffFamily.PROGRESSIVE_TIER,
            unit="m³",
            tiers=(
                Tier(upper_bound=Decimal("20"), rate=Decimal("0.50")),
                Tier(upper_bound=None, rate=Decimal("1.00")),
            ),
        )

        breakdown = calculator.compute_charges(table, 25)

        assert list(breakdown.components) == ["Usage 1-20 m³", "Usage >20 m³"]

    def test_module_level_compute_charges(self, three_tier_table):
        """Test the module function uses a default calculator."""
        assert compute_charges(three_tier_table, 350).total == Decimal("89.25")

    def test_progressive_walk_stops_when_usage_exhausted(self):
        """Test bands after the usage runs out are not visited."""
        bands = [
            (Decimal("0"), Decimal("10"), Decimal("1")),
            (Decimal("10"), None, Decimal("2")),
        ]

        assert progressive_walk(bands, Decimal("5")) == [(0, Decimal("5"), Decimal("5"))]


class TestTnbTariff:
    """Test the packaged TNB tariff: unit charges, retail waiver, incentive and taxes."""

    @pytest.fixture
    def tnb(self, registry):
        return registry.get("tnb_malaysia")

    def test_component_order(self, calculator, tnb):
        """Test tiers, unit charges, fees, incentive and taxes appear in order."""
        breakdown = calculator.compute_charges(tnb, 1000)

        assert list(breakdown.components) == [
            "Energy Charge",
            "Capacity Charge",
            "Network Charge",
            "Retail Charge",
            "EE Incentive",
            "KWTBB Tax",
            "SST Tax",
        ]

    def test_retail_charge_waived_up_to_600(self, calculator, tnb):
        """Test the retail charge is 0.00 at 600 kWh and 10.00 above."""
        assert calculator.compute_charges(tnb, 600)["Retail Charge"] == Decimal("0.00")
        assert calculator.compute_charges(tnb, 601)["Retail Charge"] == Decimal("10.00")

    def test_full_bill_at_1000_kwh(self, calculator, tnb):
        """Test every component of a 1000 kWh bill."""
        breakdown = calculator.compute_charges(tnb, 1000)

        assert breakdown["Energy Charge"] == Decimal("270.30")
        assert breakdown["Capacity Charge"] == Decimal("45.50")
        assert breakdown["Network Charge"] == Decimal("128.50")
        assert breakdown["Retail Charge"] == Decimal("10.00")
        assert breakdown["EE Incentive"] == Decimal("-117.25")
        # 1.6% of the 337.05 subtotal
        assert breakdown["KWTBB Tax"] == Decimal("5.39")
        # 8% of the 400 kWh above 600 at 0.4443/kWh marginal
        assert breakdown["SST Tax"] == Decimal("14.22")
        assert breakdown.total == Decimal("356.66")

    def test_incentive_cliff_above_ceiling(self, calculator, tnb):
        """Test the incentive disappears entirely past 1000 kWh."""
        at_ceiling = calculator.compute_charges(tnb, 1000)
        above_ceiling = calculator.compute_charges(tnb, 1001)

        assert at_ceiling["EE Incentive"] == Decimal("-117.25")
        assert above_ceiling["EE Incentive"] == Decimal("0.00")
        assert above_ceiling.total == Decimal("476.28")

    def test_taxes_present_but_zero_at_low_usage(self, calculator, tnb):
        """Test tax components are always present."""
        breakdown = calculator.compute_charges(tnb, 300)

        assert breakdown["KWTBB Tax"] == Decimal("0.00")
        assert breakdown["SST Tax"] == Decimal("0.00")

    def test_energy_tiers_merge_into_one_component(self, calculator, tnb):
        """Test both energy tiers add into a single Energy Charge."""
        breakdown = calculator.compute_charges(tnb, 1600)

        # 1500 x 0.2703 + 100 x 0.3703
        assert breakdown["Energy Charge"] == Decimal("442.48")


class TestExcessTax:
    """Test taxes on usage above a threshold."""

    def make_table(self, reference_rate=None):
        return RateTable(
            provider_id="excess_power",
            name="Excess Power",
            short_name="Excess",
            utility_kind=UtilityKind.ELECTRICITY,
            family=TariffFamily.PROGRESSIVE_TIER,
            tiers=(
                Tier(upper_bound=Decimal("100"), rate=Decimal("0.10"), label="Energy"),
                Tier(upper_bound=None, rate=Decimal("0.50"), label="Energy"),
            ),
            tax_rules=(
                TaxRule(
                    name="Excess Tax",
                    rate=Decimal("0.10"),
                    threshold=Decimal("50"),
                    base=TaxBase.EXCESS_USAGE,
                    reference_rate=reference_rate,
                ),
            ),
        )

    def test_excess_priced_at_marginal_position(self, calculator):
        """Test the excess is re-run through the tiers it actually falls in."""
        breakdown = calculator.compute_charges(self.make_table(), 150)

        # Excess 100 kWh: 50 x 0.10 + 50 x 0.50 = 30.00, tax 3.00
        assert breakdown["Excess Tax"] == Decimal("3.00")

    def test_excess_priced_at_reference_rate(self, calculator):
        """Test a reference rate prices the whole excess at one rate."""
        breakdown = calculator.compute_charges(self.make_table(Decimal("0.10")), 150)

        # Excess 100 kWh x 0.10 = 10.00, tax 1.00
        assert breakdown["Excess Tax"] == Decimal("1.00")

    def test_no_excess_tax_at_threshold(self, calculator):
        """Test the rule contributes nothing at the threshold."""
        assert calculator.compute_charges(self.make_table(), 50)["Excess Tax"] == Decimal("0.00")


class TestFreeAllocation:
    """Test free allocation water tariffs."""

    def test_air_selangor_bill(self, calculator, registry):
        """Test 40 m³: 20 free, 15 at 0.57, 5 at 1.24."""
        breakdown = calculator.compute_charges(registry.get("air_selangor"), 40)

        assert breakdown.as_dict() == {
            "Free Allocation (1-20 m³)": Decimal("0.00"),
            "Usage 21-35 m³": Decimal("8.55"),
            "Usage >35 m³": Decimal("6.20"),
            "Total": Decimal("14.75"),
        }

    def test_usage_within_free_allocation(self, calculator, registry):
        """Test usage inside the free allocation costs nothing."""
        assert calculator.compute_charges(registry.get("air_selangor"), 18).total == Decimal("0.00")

    def test_non_free_first_tier_rejected(self, calculator):
        """Test a free allocation tariff must start with a free tier."""
        table = RateTable(
            provider_id="bad_water",
            name="Bad Water",
            short_name="Bad",
            utility_kind=UtilityKind.WATER,
            family=TariffFamily.FREE_ALLOCATION_TIER,
            tiers=(
                Tier(upper_bound=Decimal("20"), rate=Decimal("0.30")),
                Tier(upper_bound=None, rate=Decimal("1.00")),
            ),
        )

        with pytest.raises(ConfigurationError, match="zero-rate first tier"):
            calculator.compute_charges(table, 10)


class TestFlatFee:
    """Test flat fee plans."""

    def test_named_plan(self, calculator, registry):
        """Test a plan is selected by name."""
        breakdown = calculator.compute_charges(registry.get("tm_unifi"), 0, plan="unifi_100mbps")

        assert dict(breakdown.components) == {MONTHLY_FEE: Decimal("149.00")}

    def test_single_plan_used_without_name(self, calculator, registry):
        """Test a tariff with one fee needs no plan name."""
        breakdown = calculator.compute_charges(registry.get("generic_waste"), 0)

        assert breakdown.total == Decimal("15.00")

    def test_missing_plan_is_ambiguous(self, calculator, registry):
        """Test several plans without a name raise instead of guessing."""
        with pytest.raises(ConfigurationError, match="plan required"):
            calculator.compute_charges(registry.get("tm_unifi"), 0)

    def test_unknown_plan(self, calculator, registry):
        """Test an unknown plan name raises."""
        with pytest.raises(ConfigurationError, match="unknown plan"):
            calculator.compute_charges(registry.get("maxis_fibre"), 0, plan="gigabit")

    def test_tax_applies_regardless_of_usage(self, calculator):
        """Test a flat fee tax is levied even though usage is zero."""
        table = RateTable(
            provider_id="taxed_fibre",
            name="Taxed Fibre",
            short_name="Taxed",
            utility_kind=UtilityKind.INTERNET,
            family=TariffFamily.FLAT_FEE,
            flat_fees=(FlatFee(name="fibre_30mbps", amount=Decimal("89.00")),),
            tax_rules=(TaxRule(name="Service Tax", rate=Decimal("0.06")),),
        )

        breakdown = calculator.compute_charges(table, 0)

        assert dict(breakdown.components) == {
            MONTHLY_FEE: Decimal("89.00"),
            "Service Tax": Decimal("5.34"),
        }
        assert breakdown.total == Decimal("94.34")

    def test_excess_usage_tax_rejected(self, calculator):
        """Test a usage based tax on a flat fee tariff raises."""
        table = RateTable(
            provider_id="taxed_fibre",
            name="Taxed Fibre",
            short_name="Taxed",
            utility_kind=UtilityKind.INTERNET,
            family=TariffFamily.FLAT_FEE,
            flat_fees=(FlatFee(name="fibre_30mbps", amount=Decimal("89.00")),),
            tax_rules=(
                TaxRule(name="Excess Tax", rate=Decimal("0.06"), base=TaxBase.EXCESS_USAGE),
            ),
        )

        with pytest.raises(ConfigurationError, match="cannot levy excess_usage tax"):
            calculator.compute_charges(table, 0)


class TestConfigurationErrors:
    """Test missing rate table data is reported, not defaulted."""

    def test_tier_family_without_tiers(self, calculator):
        """Test a progressive tariff with no tiers raises."""
        table = RateTable(
            provider_id="empty",
            name="Empty",
            short_name="Empty",
            utility_kind=UtilityKind.ELECTRICITY,
            family=TariffFamily.PROGRESSIVE_TIER,
        )

        with pytest.raises(ConfigurationError, match="has no tiers"):
            calculator.compute_charges(table, 100)

    def test_flat_fee_family_without_fees(self, calculator):
        """Test a flat fee tariff with no fees raises."""
        table = RateTable(
            provider_id="nofee",
            name="No Fee",
            short_name="NoFee",
            utility_kind=UtilityKind.INTERNET,
            family=TariffFamily.FLAT_FEE,
        )

        with pytest.raises(ConfigurationError, match="has no fees"):
            calculator.compute_charges(table, 0)

    def test_duplicate_component_names(self, calculator):
        """Test a fee named like a tier label raises."""
        table = RateTable(
            provider_id="dupe",
            name="Dupe",
            short_name="Dupe",
            utility_kind=UtilityKind.ELECTRICITY,
            family=TariffFamily.PROGRESSIVE_TIER,
            tiers=(Tier(upper_bound=None, rate=Decimal("0.1"), label="Energy"),),
            flat_fees=(FlatFee(name="Energy", amount=Decimal("5")),),
        )

        with pytest.raises(ConfigurationError, match="duplicate charge component"):
            calculator.compute_charges(table, 10)


class TestHelpers:
    """Test bill helper calculations."""

    def test_average_cost_per_unit(self, calculator):
        """Test average cost divides total by usage."""
        assert calculator.average_cost_per_unit(Decimal("89.25"), 350) == Decimal("0.255")

    def test_average_cost_with_zero_usage(self, calculator):
        """Test zero usage gives zero average instead of dividing by zero."""
        assert calculator.average_cost_per_unit(Decimal("10"), 0) == Decimal("0")

    def test_validate_bill_amount(self, calculator):
        """Test bills match within 0.50."""
        assert calculator.validate_bill_amount(Decimal("100.00"), Decimal("100.50"))
        assert not calculator.validate_bill_amount(Decimal("100.00"), Decimal("100.51"))
