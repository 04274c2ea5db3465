from unittest.mock import MagicMock

import pytest

from stratus.exceptions import ProvisioningError, ValidationError
from stratus.provision.configurators import (
    BucketNotificationConfigurator,
    TopicSubscriptionConfigurator,
    notification_id,
)

from ..helpers import LAMBDA_ARN, TOPIC_ARN, client_error, make_request

BUCKET = "uploads-bucket"
SUBSCRIPTION_ARN = f"{TOPIC_ARN}:5f1c2b9e"
OTHER_ENTRY = {
    "Id": "someone-else",
    "LambdaFunctionArn": "arn:aws:lambda:us-east-1:123456789012:function:other",
    "Events": ["s3:ObjectRemoved:*"],
}
QUEUE_ENTRY = {
    "Id": "queue",
    "QueueArn": "arn:aws:sqs:us-east-1:123456789012:q",
    "Events": ["s3:ObjectCreated:*"],
}


def _bucket_properties(**permission):
    return {
        "ServiceToken": "arn:aws:lambda:us-east-1:123456789012:function:configurator",
        "Permission": permission or {"Events": ["s3:ObjectCreated:*"]},
        "LambdaTarget": LAMBDA_ARN,
        "Bucket": BUCKET,
    }


@pytest.fixture
def s3():
    client = MagicMock()
    client.get_bucket_notification_configuration.return_value = {
        "ResponseMetadata": {"HTTPStatusCode": 200},
        "LambdaFunctionConfigurations": [OTHER_ENTRY],
        "QueueConfigurations": [QUEUE_ENTRY],
    }
    return client


@pytest.fixture
def sns():
    client = MagicMock()
    client.subscribe.return_value = {"SubscriptionArn": SUBSCRIPTION_ARN}
    return client


def _put_configuration(s3):
    s3.put_bucket_notification_configuration.assert_called_once()
    kwargs = s3.put_bucket_notification_configuration.call_args.kwargs
    assert kwargs["Bucket"] == BUCKET
    return kwargs["NotificationConfiguration"]


def test_create_adds_entry_and_keeps_others(s3):
    properties = _bucket_properties(
        Events=["s3:ObjectCreated:Put"],
        Filter={"Key": {"FilterRules": [{"Name": "prefix", "Value": "in/"}]}},
    )

    assert BucketNotificationConfigurator(s3)(make_request("Create", properties)) == {}

    assert _put_configuration(s3) == {
        "LambdaFunctionConfigurations": [
            OTHER_ENTRY,
            {
                "Id": notification_id(LAMBDA_ARN, BUCKET),
                "LambdaFunctionArn": LAMBDA_ARN,
                "Events": ["s3:ObjectCreated:Put"],
                "Filter": {"Key": {"FilterRules": [{"Name": "prefix", "Value": "in/"}]}},
            },
        ],
        "QueueConfigurations": [QUEUE_ENTRY],
    }


def test_update_replaces_own_entry(s3):
    own = {
        "Id": notification_id(LAMBDA_ARN, BUCKET),
        "LambdaFunctionArn": LAMBDA_ARN,
        "Events": ["s3:ObjectCreated:*"],
    }
    s3.get_bucket_notification_configuration.return_value = {
        "LambdaFunctionConfigurations": [own, OTHER_ENTRY]
    }

    BucketNotificationConfigurator(s3)(
        make_request("Update", _bucket_properties(Events=["s3:ObjectRemoved:*"]))
    )

    entries = _put_configuration(s3)["LambdaFunctionConfigurations"]
    assert [entry["Id"] for entry in entries] == ["someone-else", own["Id"]]
    assert entries[1]["Events"] == ["s3:ObjectRemoved:*"]


def test_delete_removes_only_own_entry(s3):
    s3.get_bucket_notification_configuration.return_value = {
        "LambdaFunctionConfigurations": [
            {"Id": notification_id(LAMBDA_ARN, BUCKET), "LambdaFunctionArn": LAMBDA_ARN}
        ],
        "QueueConfigurations": [QUEUE_ENTRY],
    }

    BucketNotificationConfigurator(s3)(make_request("Delete", _bucket_properties()))

    assert _put_configuration(s3) == {"QueueConfigurations": [QUEUE_ENTRY]}


def test_delete_failure_is_logged(s3, caplog):
    s3.get_bucket_notification_configuration.side_effect = client_error(
        "NoSuchBucket", "The specified bucket does not exist"
    )

    assert BucketNotificationConfigurator(s3)(make_request("Delete", _bucket_properties())) == {}
    s3.put_bucket_notification_configuration.assert_not_called()
    assert f"Failed to clear {BUCKET} notification" in caplog.text


def test_create_failure_is_raised(s3):
    s3.put_bucket_notification_configuration.side_effect = client_error(
        "AccessDenied", "Access Denied"
    )

    with pytest.raises(ProvisioningError, match="put_bucket_notification_configuration failed"):
        BucketNotificationConfigurator(s3)(make_request("Create", _bucket_properties()))


def test_bucket_properties_are_required(s3):
    with pytest.raises(ValidationError, match="Missing resource properties: Bucket"):
        BucketNotificationConfigurator(s3)(make_request("Create", {"LambdaTarget": LAMBDA_ARN}))


def test_delete_with_incomplete_properties_succeeds(s3, caplog):
    request = make_request("Delete", {"LambdaTarget": LAMBDA_ARN})

    assert BucketNotificationConfigurator(s3)(request) == {}
    s3.get_bucket_notification_configuration.assert_not_called()
    s3.put_bucket_notification_configuration.assert_not_called()
    assert "notification properties are incomplete" in caplog.text


def _topic_properties(mode, **extra):
    return {"Mode": mode, "TopicArn": TOPIC_ARN, "LambdaTarget": LAMBDA_ARN, **extra}


def test_subscribe_reports_subscription_arn(sns):
    request = make_request("Create", _topic_properties("Subscribe"))

    data = TopicSubscriptionConfigurator(sns)(request)

    assert data == {"SubscriptionArn": SUBSCRIPTION_ARN}
    sns.subscribe.assert_called_once_with(
        TopicArn=TOPIC_ARN, Protocol="lambda", Endpoint=LAMBDA_ARN, ReturnSubscriptionArn=True
    )


def test_subscriber_delete_leaves_subscription_alone(sns):
    TopicSubscriptionConfigurator(sns)(make_request("Delete", _topic_properties("Subscribe")))

    sns.subscribe.assert_not_called()
    sns.unsubscribe.assert_not_called()


def test_unsubscriber_only_acts_on_delete(sns):
    properties = _topic_properties("Unsubscribe", SubscriptionArn=SUBSCRIPTION_ARN)
    configurator = TopicSubscriptionConfigurator(sns)

    assert configurator(make_request("Create", properties)) == {}
    sns.unsubscribe.assert_not_called()

    assert configurator(make_request("Delete", properties)) == {}
    sns.unsubscribe.assert_called_once_with(SubscriptionArn=SUBSCRIPTION_ARN)


def test_unsubscribe_failure_is_logged(sns, caplog):
    sns.unsubscribe.side_effect = client_error("NotFound", "Subscription does not exist")
    properties = _topic_properties("Unsubscribe", SubscriptionArn=SUBSCRIPTION_ARN)

    assert TopicSubscriptionConfigurator(sns)(make_request("Delete", properties)) == {}
    assert f"Failed to unsubscribe {SUBSCRIPTION_ARN}" in caplog.text


def test_subscribe_failure_is_raised(sns):
    sns.subscribe.side_effect = client_error("AuthorizationError", "Not authorized")

    with pytest.raises(ProvisioningError, match="subscribe failed"):
        TopicSubscriptionConfigurator(sns)(make_request("Create", _topic_properties("Subscribe")))


def test_unknown_mode_is_rejected(sns):
    request = make_request("Create", _topic_properties("Resubscribe"))

    with pytest.raises(ValidationError, match="Unknown subscription mode: 'Resubscribe'"):
        TopicSubscriptionConfigurator(sns)(request)


def test_unknown_mode_on_delete_succeeds(sns):
    request = make_request("Delete", _topic_properties("Resubscribe"))

    assert TopicSubscriptionConfigurator(sns)(request) == {}
    sns.unsubscribe.assert_not_called()
