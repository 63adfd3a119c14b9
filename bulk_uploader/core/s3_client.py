"""S3クライアント管理"""
import boto3
from typing import Any, Optional
from botocore.config import Config as BotoConfig
from botocore.exceptions import NoCredentialsError
from ..models.config import AWSConfig
from ..utils.logger import LoggerManager


class S3ClientManager:
    """S3クライアントの作成と管理"""

    def __init__(self, aws_config: AWSConfig, max_pool_connections: int = 10):
        self.aws_config = aws_config
        self.max_pool_connections = max_pool_connections
        self.logger = LoggerManager.get_logger()
        self._client: Optional[Any] = None

    def get_client(self) -> Any:
        """S3クライアントを取得（必要に応じて作成）"""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        # 並列アップロード数に合わせて接続プールを広げる
        boto_config = BotoConfig(max_pool_connections=self.max_pool_connections)
        try:
            if self.aws_config.profile:
                session = boto3.Session(profile_name=self.aws_config.profile)
            else:
                session = boto3.Session()
            s3_client = session.client(
                's3',
                region_name=self.aws_config.region,
                endpoint_url=self.aws_config.endpoint_url,
                config=boto_config,
            )
        except NoCredentialsError:
            self.logger.error("AWS credentials not available.")
            raise
        except Exception as e:
            self.logger.error(f"Error creating S3 client: {e}")
            raise

        self.logger.info(f"S3 client created for region {self.aws_config.region}.")
        return s3_client
