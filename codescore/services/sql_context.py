"""
Fixed production context sent with every SQL review: table definitions (with
their existing indexes) and current data volumes. The model is asked to judge
the query against these, not against a generic database.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class TableInfo:
    name: str
    description: str
    create_script: str
    data_volume: str


TABLES: tuple[TableInfo, ...] = (
    TableInfo(
        name="M2M_INVENTORY_MASTER",
        description="Master table for M2M device inventory management",
        create_script="""CREATE TABLE `M2M_INVENTORY_MASTER` (
  `ID` int NOT NULL AUTO_INCREMENT,
  `SIM_PRODUCT_ID` varchar(20) DEFAULT NULL,
  `SIM_ID` decimal(20,0) DEFAULT NULL,
  `ICCID` decimal(20,0) DEFAULT NULL,
  `IMSI` decimal(20,0) DEFAULT NULL,
  `MSISDN` bigint DEFAULT NULL,
  `DEVICE_TYPE` varchar(30) DEFAULT NULL,
  `STATUS` varchar(20) DEFAULT NULL,
  `LOCATION_CODE` varchar(20) DEFAULT NULL,
  `ACTIVATION_DATE` datetime DEFAULT NULL,
  `CREATED_DATE` datetime DEFAULT CURRENT_TIMESTAMP,
  `UPDATED_DATE` datetime DEFAULT NULL,
  PRIMARY KEY (`ID`),
  UNIQUE KEY `UK_ICCID` (`ICCID`),
  KEY `IDX_MSISDN` (`MSISDN`),
  KEY `IDX_STATUS` (`STATUS`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4""",
        data_volume="""Current Data Volume:
• Total Records: 48,000 devices
• Active Devices: 41,280 (86%)
• Inactive Devices: 6,240 (13%)
• Retired Devices: 480 (1%)

Data Growth Pattern:
• Monthly Growth: ~1,200 new devices
• Peak Usage: Business hours (9 AM - 6 PM)
• Storage Size: 12.5 MB
• Index Size: 3.2 MB

Performance Metrics:
• Most Queried Columns: STATUS, DEVICE_TYPE, LOCATION_CODE
• Last Maintenance: 2024-12-15""",
    ),
    TableInfo(
        name="M2M_SUBSCRIBER_INFO",
        description="Subscriber information for M2M services",
        create_script="""CREATE TABLE `CBS_SUBSCRIBER_INFO` (
  `MSISDN` bigint DEFAULT NULL,
  `SubscriberID` varchar(30) NOT NULL,
  `IMSI` decimal(20,0) DEFAULT NULL,
  `ICCID` decimal(20,0) DEFAULT NULL,
  `SubscriberStatus` varchar(20) DEFAULT NULL,
  `PlanCode` varchar(30) DEFAULT NULL,
  `ActivationDate` datetime DEFAULT NULL,
  `DeactivationDate` datetime DEFAULT NULL,
  `CustomerID` varchar(30) DEFAULT NULL,
  PRIMARY KEY (`SubscriberID`),
  KEY `IDX_MSISDN` (`MSISDN`),
  KEY `IDX_CUSTOMER` (`CustomerID`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4""",
        data_volume="""Current Data Volume:
• Total Subscribers: 156,400
• Active: 132,940 (85%)
• Suspended: 15,640 (10%)
• Deactivated: 7,820 (5%)

Growth Metrics:
• Monthly New Subscribers: ~4,500
• Storage Size: 64.2 MB
• Index Size: 18.7 MB
• Last Updated: 2024-12-20 11:30 PM""",
    ),
    TableInfo(
        name="M2M_SUBSCRIBER_ACCOUNT_INFO",
        description="Billing account information for M2M subscribers",
        create_script="""CREATE TABLE `CBS_SUBSCRIBER_ACCOUNT_INFO` (
  `AccountID` varchar(30) NOT NULL,
  `SubscriberID` varchar(30) NOT NULL,
  `AccountStatus` varchar(20) DEFAULT NULL,
  `Balance` decimal(12,2) DEFAULT '0.00',
  `CreditLimit` decimal(12,2) DEFAULT NULL,
  `BillCycle` tinyint DEFAULT NULL,
  `LastPaymentDate` datetime DEFAULT NULL,
  `CreatedDate` datetime DEFAULT CURRENT_TIMESTAMP,
  PRIMARY KEY (`AccountID`),
  KEY `IDX_SUBSCRIBER` (`SubscriberID`),
  KEY `IDX_STATUS` (`AccountStatus`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4""",
        data_volume="""Current Data Volume:
• Total Account Records: 85,230 billing accounts
• Active Accounts: 72,190 (85%)
• Suspended Accounts: 8,540 (10%)
• Grace Period: 3,200 (4%)
• Terminated: 1,300 (1%)

Balance Distribution:
• Positive Balance Accounts: 64,580 (76%)
• Zero Balance: 13,420 (16%)
• Negative Balance: 7,230 (8%)
• Average Balance: $45.67

Growth Metrics:
• Monthly New Accounts: 2,800
• Account Closure Rate: 1.2%
• Storage Size: 38.5 MB
• Last Updated: 2024-12-20 11:30 PM""",
    ),
)


def table_structures_text(tables: tuple[TableInfo, ...] = TABLES) -> str:
    return "\n\n".join(f"{t.name}:\n{t.create_script}" for t in tables)


def data_volume_text(tables: tuple[TableInfo, ...] = TABLES) -> str:
    return "\n\n".join(f"{t.name}:\n{t.data_volume}" for t in tables)
