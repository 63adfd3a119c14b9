#!/usr/bin/env python3
"""Bulk Uploader - エントリーポイント"""
import sys

from bulk_uploader import BulkUploader


def main():
    """メイン関数"""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.json"
    try:
        uploader = BulkUploader(config_path)
        successful, failed = uploader.run()
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)

    # 終了コードを設定
    sys.exit(0 if failed == 0 else 1)


if __name__ == "__main__":
    main()
