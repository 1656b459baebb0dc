import unittest
from unittest import mock

from forensics.adapters.threat.chainalysis_adapter import ChainalysisAdapter
from forensics.adapters.threat.community_adapter import CommunityDbAdapter
from forensics.adapters.threat.darklist_adapter import DarklistAdapter, parse_darklist
from forensics.adapters.threat.elliptic_adapter import EllipticAdapter, map_risk_score
from forensics.adapters.threat.registry import build_providers
from forensics.adapters.threat.trmlabs_adapter import TrmLabsAdapter
from forensics.adapters.threat.watchlist_adapter import WatchlistAdapter
from forensics.core.enums import RiskLevel
from forensics.core.errors import MalformedResponseError, MissingCredentialError, ProviderError
from forensics.core.models import KnownLists, ProviderConfig, ThreatIntelConfig


def _session(*payloads, status: int = 200):
    session = mock.MagicMock()
    responses = []
    for payload in payloads:
        resp = mock.MagicMock()
        resp.status_code = status
        resp.json.return_value = payload
        responses.append(resp)
    session.request.side_effect = responses
    return session


class KeyedProviderTests(unittest.TestCase):
    def test_missing_key_fails_before_any_request(self) -> None:
        session = _session()
        for cls in (ChainalysisAdapter, EllipticAdapter, TrmLabsAdapter):
            with self.assertRaises(MissingCredentialError):
                cls("https://example.test", session=session).check_address("0xabc")
        session.request.assert_not_called()

    def test_chainalysis_mapping(self) -> None:
        session = _session({"risk": "Severe", "categories": ["sanctions"], "confidence": 0.95})
        p = ChainalysisAdapter("https://kyt.test/v2/", api_key="k", session=session)
        r = p.check_address("0xABC")

        self.assertEqual(r.risk, RiskLevel.CRITICAL)
        self.assertEqual(r.categories, ("sanctions",))
        self.assertEqual(r.confidence, 0.95)
        self.assertEqual(r.sources, ("Chainalysis",))
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", "https://kyt.test/v2/addresses/0xabc"))
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer k")

    def test_elliptic_mapping(self) -> None:
        session = _session({"risk_score": 6.5, "cluster_entities": [{"category": "Mixer"}, {"category": "Mixer"}]})
        r = EllipticAdapter("https://ell.test", api_key="k", session=session).check_address("0xabc")

        self.assertEqual(r.risk, RiskLevel.HIGH)
        self.assertEqual(r.categories, ("Mixer",))
        self.assertEqual(r.confidence, 0.8)
        _, kwargs = session.request.call_args
        self.assertEqual(kwargs["headers"]["x-access-key"], "k")
        self.assertEqual(kwargs["json"]["subject"]["hash"], "0xabc")

    def test_elliptic_score_bands(self) -> None:
        self.assertEqual(map_risk_score(9), RiskLevel.CRITICAL)
        self.assertEqual(map_risk_score("3"), RiskLevel.MEDIUM)
        self.assertEqual(map_risk_score(2.9), RiskLevel.LOW)
        self.assertEqual(map_risk_score(None), RiskLevel.LOW)

    def test_trm_sanctioned(self) -> None:
        session = _session([{"address": "0xabc", "isSanctioned": True}])
        r = TrmLabsAdapter("https://trm.test/v1", api_key="k", session=session).check_address("0xabc")

        self.assertEqual(r.risk, RiskLevel.CRITICAL)
        self.assertEqual(r.categories, ("sanctions",))
        self.assertEqual(r.confidence, 0.9)
        args, kwargs = session.request.call_args
        self.assertEqual(args[1], "https://trm.test/v1/sanctions/screening")
        self.assertEqual(kwargs["json"], [{"address": "0xabc"}])
        self.assertEqual(kwargs["auth"], ("k", "k"))

    def test_trm_clean(self) -> None:
        session = _session([{"address": "0xabc", "isSanctioned": False}])
        r = TrmLabsAdapter("https://trm.test/v1", api_key="k", session=session).check_address("0xabc")
        self.assertEqual(r.risk, RiskLevel.LOW)
        self.assertEqual(r.categories, ())


class HttpPlumbingTests(unittest.TestCase):
    def test_non_object_response_is_rejected(self) -> None:
        p = ChainalysisAdapter("https://kyt.test", api_key="k", max_retries=1, session=_session(["nope"]))
        with self.assertRaises(MalformedResponseError):
            p.check_address("0xabc")

    def test_http_errors_exhaust_retries(self) -> None:
        session = mock.MagicMock()
        session.request.side_effect = ConnectionError("down")
        p = CommunityDbAdapter("https://db.test/v1", max_retries=1, session=session)
        with self.assertRaises(ProviderError):
            p.check_address("0xabc")
        self.assertEqual(session.request.call_count, 1)

    def test_rate_limited_response(self) -> None:
        p = CommunityDbAdapter("https://db.test/v1", max_retries=1, session=_session({}, status=429))
        with self.assertRaises(ProviderError):
            p.check_address("0xabc")


class CommunityProviderTests(unittest.TestCase):
    def test_name_includes_host(self) -> None:
        p = CommunityDbAdapter("https://api.scam-database.com/v1", session=_session())
        self.assertEqual(p.name, "Community DB (api.scam-database.com)")

    def test_report_count_sets_tier(self) -> None:
        session = _session(
            {"is_scam": True, "report_count": 3},
            {"is_scam": True, "report_count": 1},
            {"is_scam": False},
        )
        p = CommunityDbAdapter("https://db.test/v1", session=session, requests_per_sec=100)

        many = p.check_address("0xa")
        few = p.check_address("0xb")
        clean = p.check_address("0xc")
        self.assertEqual((many.risk, many.categories), (RiskLevel.HIGH, ("scam",)))
        self.assertEqual((few.risk, few.categories), (RiskLevel.MEDIUM, ("scam",)))
        self.assertEqual((clean.risk, clean.categories), (RiskLevel.LOW, ()))
        self.assertEqual(many.confidence, 0.7)
        self.assertEqual(session.request.call_args_list[0][0], ("GET", "https://db.test/v1/check/0xa"))


class DarklistProviderTests(unittest.TestCase):
    def test_list_is_fetched_once_and_refreshed(self) -> None:
        now = [0.0]
        session = _session(
            [{"address": "0xBAD", "comment": "phish"}],
            {"0xnew": {}},
        )
        p = DarklistAdapter(
            "https://raw.test/darklist.json",
            refresh_sec=100,
            clock=lambda: now[0],
            session=session,
            requests_per_sec=100,
        )

        hit = p.check_address("0xbad")
        self.assertEqual((hit.risk, hit.categories), (RiskLevel.HIGH, ("phishing",)))
        self.assertEqual(p.check_address("0xgood").risk, RiskLevel.LOW)
        self.assertEqual(session.request.call_count, 1)

        now[0] = 100.0
        self.assertEqual(p.check_address("0xnew").risk, RiskLevel.HIGH)
        self.assertEqual(p.check_address("0xbad").risk, RiskLevel.LOW)
        self.assertEqual(session.request.call_count, 2)

    def test_parse_shapes(self) -> None:
        self.assertEqual(parse_darklist({"0xA": 1}), frozenset({"0xa"}))
        self.assertEqual(parse_darklist([{"address": "0xB"}, "0xC", 5]), frozenset({"0xb", "0xc"}))
        with self.assertRaises(MalformedResponseError):
            parse_darklist("nope")


class WatchlistProviderTests(unittest.TestCase):
    def test_hits_and_misses(self) -> None:
        lists = KnownLists.from_iterables(mixers=["0xm"], blacklist=["0xb", "0xm"], scam_contracts=["0xs"])
        p = WatchlistAdapter(lists)

        both = p.check_address("0xM")
        self.assertEqual(both.risk, RiskLevel.CRITICAL)
        self.assertEqual(both.categories, ("blacklist", "mixer"))
        self.assertEqual(both.confidence, 0.9)

        self.assertEqual(p.check_address("0xs").risk, RiskLevel.HIGH)
        miss = p.check_address("0xclean")
        self.assertEqual((miss.risk, miss.confidence), (RiskLevel.LOW, 0.5))
        self.assertEqual(miss.sources, ("Local Watchlist",))


class RegistryTests(unittest.TestCase):
    def test_builds_enabled_providers_in_order(self) -> None:
        cfg = ThreatIntelConfig(
            providers=(
                ProviderConfig("chainalysis", "https://kyt.test", api_key="k"),
                ProviderConfig("elliptic", "https://ell.test", enabled=False),
                ProviderConfig("community", "https://one.test/v1"),
                ProviderConfig("community", "https://two.test/v1"),
                ProviderConfig("darklist", "https://raw.test/list.json"),
                ProviderConfig("mystery", "https://x.test"),
            ),
        )
        names = [p.name for p in build_providers(cfg, KnownLists())]
        self.assertEqual(
            names,
            [
                "Chainalysis",
                "Community DB (one.test)",
                "Community DB (two.test)",
                "GitHub Community Lists",
                "Local Watchlist",
            ],
        )

    def test_static_lists_toggle(self) -> None:
        cfg = ThreatIntelConfig(use_static_lists=False)
        self.assertEqual(build_providers(cfg), [])


if __name__ == "__main__":
    unittest.main()
