"""boto3 client factory bound to the region the environment is deployed in."""

from functools import cached_property

import boto3


class AwsClients:
    """Lazily created boto3 clients sharing one session."""

    def __init__(self, region: str, session: boto3.session.Session | None = None):
        self.region = region
        self.session = session or boto3.session.Session(region_name=region or None)

    def client(self, service: str):
        return self.session.client(service, region_name=self.region or None)

    @cached_property
    def ec2(self):
        return self.client("ec2")

    @cached_property
    def s3(self):
        return self.client("s3")

    @cached_property
    def elb(self):
        return self.client("elb")

    @cached_property
    def eks(self):
        return self.client("eks")

    @cached_property
    def sts(self):
        return self.client("sts")

    def account_id(self) -> str:
        return self.sts.get_caller_identity()["Account"]
