import unittest
from datetime import date

from bizcase_engine import MAX_PERIODS, build_business_case, generate_monthly_records
from bizcase_engine.projection import add_months

from sample_cases import cost_savings_case, unit_sales_case


class TestUnitSalesProjection(unittest.TestCase):
    def setUp(self):
        self.records = generate_monthly_records(build_business_case(unit_sales_case()))

    def test_first_month(self):
        """
        100 units at 50 EUR: revenue 5000, COGS 20%, opex 1700, CAC 5/unit and
        a 5000 one-off capex.
        """
        first = self.records[0]
        self.assertEqual(first.month, 1)
        self.assertEqual(first.date, date(2026, 1, 1))
        self.assertEqual(first.sales_volume, 100)
        self.assertEqual(first.new_customers, 100)
        self.assertEqual(first.unit_price, 50)
        self.assertEqual(first.revenue, 5000)
        self.assertEqual(first.cogs, -1000)
        self.assertEqual(first.gross_profit, 4000)
        self.assertEqual(first.sales_marketing, -1700)
        self.assertEqual(first.total_cac, -500)
        self.assertEqual(first.total_opex, -2200)
        self.assertEqual(first.ebitda, 1800)
        self.assertEqual(first.capex, -5000)
        self.assertEqual(first.net_cash_flow, -3200)
        self.assertIsNone(first.total_benefits)

    def test_later_months_have_no_capex(self):
        for record in self.records[1:]:
            self.assertEqual(record.capex, 0)
            self.assertEqual(record.net_cash_flow, 1800)

    def test_accounting_identities(self):
        for record in self.records:
            self.assertEqual(record.gross_profit, record.revenue + record.cogs)
            self.assertEqual(record.ebitda, record.gross_profit + record.total_opex)
            self.assertEqual(record.net_cash_flow, record.ebitda + record.capex)

    def test_zero_amounts_are_not_negative_zero(self):
        self.assertEqual(str(self.records[1].capex), "0.0")
        self.assertEqual(str(self.records[0].rd), "0.0")

    def test_projection_is_deterministic(self):
        case = build_business_case(unit_sales_case())
        self.assertEqual(generate_monthly_records(case), generate_monthly_records(case))


class TestHorizon(unittest.TestCase):
    def test_default_horizon_is_sixty_months(self):
        data = unit_sales_case()
        del data["meta"]["periods"]
        self.assertEqual(len(generate_monthly_records(build_business_case(data))), MAX_PERIODS)

    def test_horizon_is_capped(self):
        records = generate_monthly_records(build_business_case(unit_sales_case(periods=120)))
        self.assertEqual(len(records), MAX_PERIODS)
        self.assertEqual(records[-1].month, 60)

    def test_empty_case_projects_zeros(self):
        records = generate_monthly_records(build_business_case({}))
        self.assertEqual(len(records), MAX_PERIODS)
        self.assertTrue(all(r.revenue == 0 and r.net_cash_flow == 0 for r in records))

    def test_dates_clamp_to_month_end(self):
        records = generate_monthly_records(build_business_case(unit_sales_case(start_date="2026-01-31")))
        self.assertEqual(records[1].date, date(2026, 2, 28))
        self.assertEqual(records[2].date, date(2026, 3, 31))
        self.assertEqual(add_months(date(2027, 12, 15), 1), date(2028, 1, 15))


class TestRecurringProjection(unittest.TestCase):
    def test_churn_and_new_customers(self):
        data = {
            "meta": {"business_model": "recurring", "periods": 3},
            "assumptions": {
                "pricing": {"avg_unit_price": {"value": 10}},
                "customers": {
                    "churn_pct": {"value": 0.1},
                    "segments": [
                        {"id": "smb", "volume": {"type": "time_series", "series": [{"value": 100}, {"value": 100}, {"value": 120}]}}
                    ],
                },
                "unit_economics": {"cac": {"value": 10}},
            },
        }
        records = generate_monthly_records(build_business_case(data))

        self.assertEqual((records[0].new_customers, records[0].existing_customers), (100, 0))
        self.assertEqual((records[1].new_customers, records[1].existing_customers), (10, 90))
        self.assertEqual((records[2].new_customers, records[2].existing_customers), (30, 90))

        # CAC is charged on new customers only
        self.assertEqual([r.total_cac for r in records], [-1000, -100, -300])
        self.assertEqual(records[2].revenue, 1200)


class TestCostSavingsProjection(unittest.TestCase):
    def test_benefits_drive_revenue(self):
        data = cost_savings_case()
        # Pricing is ignored for cost-savings cases
        data["assumptions"]["pricing"] = {"avg_unit_price": {"value": 999}}
        records = generate_monthly_records(build_business_case(data))
        first = records[0]

        self.assertEqual(first.sales_volume, 1)
        self.assertEqual(first.unit_price, 0)
        self.assertEqual(first.baseline_costs, 10_000)
        self.assertEqual(first.cost_savings, 500)
        self.assertEqual(first.efficiency_gains, 5000)
        self.assertEqual(first.total_benefits, 5500)
        self.assertEqual(first.revenue, 5500)
        self.assertEqual(records[5].revenue, 7000)


if __name__ == "__main__":
    unittest.main()
