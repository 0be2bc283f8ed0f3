#!/usr/bin/env python3
"""
벤더 프로비저닝 스크립트
API 키 발급과 스토어 이름/도메인/전화번호 매핑을 등록합니다.

    python -m catalog_sync.scripts.provision_vendor key <vendor_id>
    python -m catalog_sync.scripts.provision_vendor map <vendor_id> --name "Acme Store"
    python -m catalog_sync.scripts.provision_vendor map <vendor_id> --domain acme.myshopify.com
    python -m catalog_sync.scripts.provision_vendor map <vendor_id> --phone +2348012345678
    python -m catalog_sync.scripts.provision_vendor revoke <credential_id>
"""
import argparse
import asyncio
import sys

from catalog_sync.adapters.persistence.models import create_engine_from_settings, init_models
from catalog_sync.adapters.persistence.repositories import SqlAlchemyCatalogRepository
from catalog_sync.core.entities.vendor import LookupKeyType
from catalog_sync.shared.config import get_settings
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="벤더 API 키 / 스토어 매핑 관리")
    subparsers = parser.add_subparsers(dest="command", required=True)

    key_parser = subparsers.add_parser("key", help="API 키 발급")
    key_parser.add_argument("vendor_id")
    key_parser.add_argument("--value", help="지정할 키 값 (없으면 자동 생성)")

    map_parser = subparsers.add_parser("map", help="스토어 매핑 등록")
    map_parser.add_argument("vendor_id")
    group = map_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--name")
    group.add_argument("--domain")
    group.add_argument("--phone")

    revoke_parser = subparsers.add_parser("revoke", help="API 키 비활성화")
    revoke_parser.add_argument("credential_id")

    return parser


async def provision(args: argparse.Namespace, repository: SqlAlchemyCatalogRepository) -> str:
    """명령 실행 후 출력할 메시지 반환"""
    if args.command == "key":
        credential = await repository.add_credential(args.vendor_id, api_key=args.value)
        return f"✅ API 키 발급 완료\n   credential_id: {credential.id}\n   api_key: {credential.credential_value}"

    if args.command == "map":
        if args.name:
            key_type, lookup_key = LookupKeyType.NAME, args.name
        elif args.domain:
            key_type, lookup_key = LookupKeyType.DOMAIN, args.domain
        else:
            key_type, lookup_key = LookupKeyType.PHONE, args.phone

        mapping = await repository.add_store_mapping(key_type, lookup_key, args.vendor_id)
        return f"✅ 스토어 매핑 등록 완료: {mapping.key_type.value}={mapping.lookup_key} -> {mapping.vendor_id}"

    await repository.set_credential_active(args.credential_id, False)
    return f"✅ API 키 비활성화 완료: {args.credential_id}"


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    engine = create_engine_from_settings(settings)
    try:
        await init_models(engine)
        message = await provision(args, SqlAlchemyCatalogRepository(engine))
    except Exception as e:
        logger.error(f"프로비저닝 실패: {e}")
        print(f"❌ 프로비저닝 중 오류가 발생했습니다: {e}")
        return 1
    finally:
        await engine.dispose()

    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
