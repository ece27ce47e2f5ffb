"""
Command line access to the CMS Medicare search operations.

Usage:
    python -m cms_puller indications
    python -m cms_puller indication igan --state CA --limit 50
    python -m cms_puller providers --specialty Nephrology --state NY
    python -m cms_puller services --npi 1234567890 --hcpcs J9312
    python -m cms_puller geography --hcpcs 50200 --level State
    python -m cms_puller profile 1234567890
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from cms_common.config import get_settings
from cms_common.exceptions import CMSDataError
from cms_common.indications import get_all_indications
from cms_puller.search_params import GeographySearchParams, ProviderSearchParams, ServiceSearchParams
from cms_puller.service import CMSDataService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cms_puller", description="Search CMS Medicare provider data")
    parser.add_argument("--year", default=None, help="Data year (default from CMS_API_DEFAULT_YEAR)")
    parser.add_argument("--limit", type=int, default=25, help="Maximum number of records to fetch")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("indications", help="List the indications in the catalog")

    ind = sub.add_parser("indication", help="Rank physicians for an indication")
    ind.add_argument("indication_id")
    ind.add_argument("--state")

    prov = sub.add_parser("providers", help="Search providers")
    prov.add_argument("--name")
    prov.add_argument("--specialty")
    prov.add_argument("--state")
    prov.add_argument("--city")

    svc = sub.add_parser("services", help="Search provider services")
    svc.add_argument("--npi")
    svc.add_argument("--hcpcs", nargs="*")
    svc.add_argument("--state")

    geo = sub.add_parser("geography", help="Search service aggregates by geography")
    geo.add_argument("--hcpcs", nargs="*")
    geo.add_argument("--level")
    geo.add_argument("--state")

    profile = sub.add_parser("profile", help="Show a provider profile")
    profile.add_argument("npi")
    return parser


async def run(args: argparse.Namespace) -> int:
    if args.command == "indications":
        for ind in get_all_indications():
            print(f"{ind.id:<22} {ind.name} ({', '.join(ind.specialties)})")
        return 0

    async with CMSDataService() as service:
        if args.command == "indication":
            params = ProviderSearchParams(year=args.year, state=args.state, max_total_results=args.limit)
            result = await service.search_by_indication(args.indication_id, params)
            print(f"\n🔍 {result.indication.name}: {result.total_returned} physicians ({result.data_source})")
            for rank, doc in enumerate(result.physicians, start=1):
                print(
                    f"{rank:>3}. {doc.name:<35} {doc.specialty or '':<20} {doc.state or '':<3}"
                    f" services={doc.indication_services:g} benes={doc.indication_beneficiaries:g}"
                    f" score={doc.relevance_score:.1f}"
                )
            for note in result.limitations:
                print(f"⚠️  {note}")

        elif args.command == "providers":
            params = ProviderSearchParams(
                year=args.year,
                provider_name=args.name,
                provider_type=args.specialty,
                state=args.state,
                city=args.city,
                max_total_results=args.limit,
            )
            result = await service.search_providers(params)
            print(f"\n✅ {result.total_returned} providers ({result.data_year}, pages={result.page_count})")
            for p in result.records:
                print(f"{p.npi}  {p.name:<35} {p.specialty or '':<25} {p.city or ''}, {p.state or ''}")

        elif args.command == "services":
            params = ServiceSearchParams(
                year=args.year, npi=args.npi, hcpcs_codes=args.hcpcs, state=args.state, max_total_results=args.limit
            )
            result = await service.search_provider_services(params)
            print(f"\n✅ {result.total_returned} service rows ({result.data_year})")
            for s in result.records:
                print(f"{s.npi}  {s.hcpcs_code or '':<6} {s.name:<30} services={s.services} benes={s.beneficiaries}")

        elif args.command == "geography":
            params = GeographySearchParams(
                year=args.year,
                hcpcs_codes=args.hcpcs,
                geography_level=args.level,
                state=args.state,
                max_total_results=args.limit,
            )
            result = await service.search_geography(params)
            print(f"\n✅ {result.total_returned} geography rows ({result.data_year})")
            for g in result.records:
                print(f"{g.geography or '':<25} {g.hcpcs_code or '':<6} providers={g.providers} services={g.services}")

        elif args.command == "profile":
            profile = await service.get_provider_profile(args.npi, year=args.year)
            if profile is None:
                print(f"❌ No provider found for NPI {args.npi}")
                return 1
            p = profile.provider
            print(f"\n👤 {p.name} ({p.credentials or '-'}) {p.specialty or ''}, {p.city or ''} {p.state or ''}")
            print(f"   {profile.procedure_count} procedures, {profile.drug_count} drugs ({profile.data_source})")
            for s in profile.top_procedures:
                print(f"   • {s.hcpcs_code} {s.hcpcs_description or ''} services={s.services}")
            for s in profile.top_drugs:
                print(f"   💊 {s.hcpcs_code} {s.hcpcs_description or ''} services={s.services}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user")
        return 130
    except CMSDataError as e:
        print(f"\n❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
