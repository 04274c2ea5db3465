# Service principals, see
# https://docs.aws.amazon.com/general/latest/gr/aws-arns-and-namespaces.html
S3_PRINCIPAL = "s3.amazonaws.com"
SNS_PRINCIPAL = "sns.amazonaws.com"
EC2_PRINCIPAL = "ec2.amazonaws.com"
LAMBDA_PRINCIPAL = "lambda.amazonaws.com"
APIGATEWAY_PRINCIPAL = "apigateway.amazonaws.com"

POLICY_VERSION = "2012-10-17"
POLICY_NAME = "StratusLambdaPolicy"

ASSUME_ROLE_POLICY = {
    "Version": POLICY_VERSION,
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": [LAMBDA_PRINCIPAL]},
            "Action": ["sts:AssumeRole"],
        },
        {
            "Effect": "Allow",
            "Principal": {"Service": [EC2_PRINCIPAL]},
            "Action": ["sts:AssumeRole"],
        },
    ],
}

LOGS_STATEMENT = {
    "Effect": "Allow",
    "Action": ["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
    "Resource": "arn:aws:logs:*:*:*",
}

# Keyed by the service namespace (third ARN segment) of an event source. The
# Resource field is filled with the event source ARN.
EVENT_SOURCE_STATEMENTS = {
    "dynamodb": {
        "Effect": "Allow",
        "Action": [
            "dynamodb:DescribeStream",
            "dynamodb:GetRecords",
            "dynamodb:GetShardIterator",
            "dynamodb:ListStreams",
        ],
    },
    "kinesis": {
        "Effect": "Allow",
        "Action": [
            "kinesis:GetRecords",
            "kinesis:GetShardIterator",
            "kinesis:DescribeStream",
            "kinesis:ListStreams",
        ],
    },
    "sqs": {
        "Effect": "Allow",
        "Action": ["sqs:ReceiveMessage", "sqs:DeleteMessage", "sqs:GetQueueAttributes"],
    },
}

HELPER_MEMORY = 128
HELPER_TIMEOUT = 30
HELPER_HANDLER_MODULE = "stratus.provision.handlers"
BUCKET_NOTIFICATION_HANDLER = f"{HELPER_HANDLER_MODULE}.bucket_notification_handler"
TOPIC_SUBSCRIPTION_HANDLER = f"{HELPER_HANDLER_MODULE}.topic_subscription_handler"
API_GATEWAY_HANDLER = f"{HELPER_HANDLER_MODULE}.api_gateway_handler"
