"""
Chain Ranking Engine

Ranks the supported chains for a use case, optionally personalised with the
project's framework, language and dependencies. Ranking is a pure function
of its inputs over static tables.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .types import SupportedChain, UseCase, FitLabel

logger = logging.getLogger(__name__)


@dataclass
class ProjectContext:
    """Signals observed in the user's project"""
    framework: Optional[str] = None  # react, next, node, fastapi, ...
    language: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)


@dataclass
class ChainRanking:
    chain: SupportedChain
    rank: int
    score: int  # 0-100
    fit: FitLabel
    headline: str
    reasons: List[str]  # static reasons for the use case
    considerations: List[str]
    estimated_cost: str
    context_bonus: int = 0
    context_reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UseCaseDetails:
    headline: str
    reasons: Tuple[str, ...]
    considerations: Tuple[str, ...]
    cost_estimate: str


@dataclass(frozen=True)
class RelatedDependency:
    bonus: int
    reason: str


@dataclass(frozen=True)
class SdkSupport:
    """Support scores: 10 excellent, 8 good, 5 average, 4 or below limited"""
    frameworks: Dict[str, int]
    languages: Dict[str, int]
    related_deps: Dict[str, RelatedDependency]


UNKNOWN_SUPPORT_SCORE = 5
MAX_CONTEXT_BONUS = 25

# Order used for ties in the ranking
RANKED_CHAINS = sorted(SupportedChain, key=lambda chain: chain.value)

CHAIN_USE_CASE_SCORES: Dict[SupportedChain, Dict[UseCase, int]] = {
    SupportedChain.HEDERA: {
        UseCase.TOKENS: 95,  # Native HTS, lowest fees
        UseCase.NFTS: 70,
        UseCase.PAYMENTS: 85,
        UseCase.DEFI: 50,
        UseCase.ENTERPRISE: 98,
        UseCase.GAMING: 75,
        UseCase.SOCIAL: 80,
        UseCase.OTHER: 85,
    },
    SupportedChain.ETHEREUM: {
        UseCase.TOKENS: 90,
        UseCase.NFTS: 85,
        UseCase.PAYMENTS: 60,  # Fees too high for small payments
        UseCase.DEFI: 98,
        UseCase.ENTERPRISE: 80,
        UseCase.GAMING: 50,
        UseCase.SOCIAL: 60,
        UseCase.OTHER: 80,
    },
    SupportedChain.SOLANA: {
        UseCase.TOKENS: 85,
        UseCase.NFTS: 95,  # Metaplex, cheapest minting
        UseCase.PAYMENTS: 90,
        UseCase.DEFI: 80,
        UseCase.ENTERPRISE: 55,
        UseCase.GAMING: 98,
        UseCase.SOCIAL: 90,
        UseCase.OTHER: 80,
    },
    SupportedChain.BASE: {
        UseCase.TOKENS: 85,
        UseCase.NFTS: 80,
        UseCase.PAYMENTS: 95,  # Coinbase on-ramp
        UseCase.DEFI: 75,
        UseCase.ENTERPRISE: 70,
        UseCase.GAMING: 80,
        UseCase.SOCIAL: 85,
        UseCase.OTHER: 80,
    },
}

CHAIN_USE_CASE_DETAILS: Dict[SupportedChain, Dict[UseCase, UseCaseDetails]] = {
    SupportedChain.HEDERA: {
        UseCase.TOKENS: UseCaseDetails(
            "Native token service with lowest fees",
            ("Native HTS (Hedera Token Service) - no smart contracts needed",
             "Fixed $0.0001 per transaction - predictable costs",
             "Built-in compliance features (KYC, freeze, clawback)",
             "Enterprise governance (Google, IBM, Boeing)"),
            ("Smaller DeFi ecosystem for token liquidity",
             "Less wallet support than Ethereum"),
            "Token creation: ~$1 | Transfers: $0.0001",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Low-cost NFTs with enterprise features",
            ("Native NFT support via HTS",
             "Lowest minting costs ($0.05 per NFT)",
             "Built-in royalty enforcement"),
            ("Smaller NFT marketplace ecosystem",
             "Less collector base than Ethereum/Solana",
             "Fewer NFT tools and platforms"),
            "Mint: ~$0.05 | Transfer: $0.0001",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Enterprise-grade payments with predictable fees",
            ("Fixed $0.0001 transaction fee",
             "3-5 second finality",
             "Carbon-negative network",
             "Regulatory-friendly design"),
            ("Fewer payment gateway integrations",
             "Less mainstream wallet support"),
            "Per payment: $0.0001 (fixed)",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Emerging DeFi with enterprise focus",
            ("Lower fees than Ethereum mainnet",
             "SaucerSwap and other DEXes available"),
            ("Much smaller DeFi ecosystem",
             "Limited liquidity compared to Ethereum",
             "Fewer DeFi protocols available"),
            "Swap: ~$0.01 | Liquidity: ~$0.05",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Built for enterprise from the ground up",
            ("Governed by Fortune 500 companies",
             "ABFT consensus (bank-grade security)",
             "Predictable, fixed transaction fees",
             "Built-in compliance (SOC2, GDPR ready)",
             "Hedera Consensus Service for audit trails"),
            ("Requires enterprise mindset shift to DLT",),
            "Audit log entry: $0.0001 | Smart contract: ~$1",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Fast and cheap for in-game assets",
            ("3-5 second finality",
             "Predictable low costs for items",
             "Native token support for currencies"),
            ("Smaller gaming ecosystem",
             "Fewer game SDKs available"),
            "Item mint: ~$0.05 | Transfer: $0.0001",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Affordable micro-transactions",
            ("$0.0001 per transaction enables tipping",
             "Hedera Consensus Service for social feeds"),
            ("Less social app ecosystem",
             "Fewer integrations"),
            "Tip/Like: $0.0001",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Versatile enterprise blockchain",
            ("Good all-around performance",
             "Lowest transaction fees",
             "Enterprise-ready"),
            ("Evaluate based on specific needs",),
            "Varies by use case",
        ),
    },
    SupportedChain.ETHEREUM: {
        UseCase.TOKENS: UseCaseDetails(
            "The gold standard for tokens (ERC-20)",
            ("ERC-20 is the most widely accepted token standard",
             "Maximum liquidity and exchange listings",
             "Most wallets support Ethereum tokens",
             "Largest developer ecosystem"),
            ("High gas fees ($1-10 per transfer)",
             "Variable costs make budgeting hard",
             "Consider L2s (Base, Arbitrum) for lower fees"),
            "Token creation: $50-200 | Transfer: $1-10",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Largest NFT marketplace ecosystem",
            ("OpenSea, Blur, and major marketplaces",
             "Largest collector base",
             "ERC-721 is the standard",
             "Most established provenance"),
            ("High minting costs ($5-50 per NFT)",
             "Gas fees can spike during demand",
             "Consider L2s for cheaper minting"),
            "Mint: $5-50 | Transfer: $2-10",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Most widely accepted, but expensive",
            ("Accepted by most crypto payment processors",
             "Highest trust and recognition",
             "Most wallet options"),
            ("High fees make small payments impractical",
             "12-15 second finality",
             "Better for large transactions"),
            "Per payment: $1-10 (variable)",
        ),
        UseCase.DEFI: UseCaseDetails(
            "The home of DeFi - maximum liquidity",
            ("Uniswap, Aave, Compound - all major protocols",
             "Deepest liquidity pools",
             "Most battle-tested smart contracts",
             "Widest protocol integrations"),
            ("High gas fees for transactions",
             "MEV (front-running) concerns",
             "Complex for beginners"),
            "Swap: $5-30 | Lending: $10-50",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Proven track record, premium cost",
            ("Most audited and battle-tested",
             "Largest talent pool",
             "Regulatory clarity in many jurisdictions",
             "Enterprise Ethereum Alliance support"),
            ("High operational costs",
             "Scalability limitations on mainnet",
             "Consider L2s or private chains"),
            "Smart contract deploy: $100-500",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Not ideal for gaming (slow, expensive)",
            ("Immutable X L2 available for gaming",
             "Strong NFT infrastructure"),
            ("Too slow for real-time gaming (12s blocks)",
             "Too expensive for frequent transactions",
             "Use L2s like Immutable X instead"),
            "Not recommended for direct use",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Lens Protocol, but high fees",
            ("Lens Protocol for decentralized social",
             "Strong identity solutions"),
            ("Fees too high for micro-transactions",
             "Better suited for high-value social actions"),
            "Post: $1-5 (impractical for most)",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Most established, highest fees",
            ("Largest ecosystem",
             "Most developer resources",
             "Widest adoption"),
            ("High costs",
             "Consider L2s for better economics"),
            "Varies, generally $1-50 per tx",
        ),
    },
    SupportedChain.SOLANA: {
        UseCase.TOKENS: UseCaseDetails(
            "Fast SPL tokens with low fees",
            ("SPL token standard - fast and cheap",
             "Growing DeFi ecosystem for liquidity",
             "400ms finality for quick confirmations"),
            ("Less wallet support than Ethereum",
             "Past network stability issues (improving)",
             "Different tooling than EVM chains"),
            "Token creation: ~$0.01 | Transfer: $0.00025",
        ),
        UseCase.NFTS: UseCaseDetails(
            "The best choice for NFTs - cheapest minting",
            ("Metaplex standard - industry proven",
             "Minting costs under $0.01",
             "Magic Eden, Tensor marketplaces",
             "Compressed NFTs for even lower costs",
             "Strong creator community"),
            ("Smaller collector base than Ethereum",
             "Less mainstream recognition"),
            "Mint: $0.01-0.05 | Compressed: $0.0001",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Lightning fast, nearly free payments",
            ("400ms finality - near instant",
             "$0.00025 per transaction",
             "Solana Pay for merchant integration",
             "Great for high-volume, low-value payments"),
            ("Less mainstream merchant adoption",
             "Fewer fiat on-ramps than Base"),
            "Per payment: $0.00025",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Fast-growing DeFi ecosystem",
            ("Raydium, Orca, Jupiter aggregator",
             "Fast execution for trading",
             "Low fees enable more strategies"),
            ("Less liquidity than Ethereum",
             "Fewer established protocols",
             "Past exploit incidents"),
            "Swap: $0.001 | Liquidity: $0.01",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Speed-focused, less enterprise features",
            ("High throughput for data-heavy apps",
             "Low costs for high-volume operations"),
            ("Less enterprise governance",
             "Past network outages raise concerns",
             "Fewer compliance tools",
             "Less regulatory clarity"),
            "Transaction: $0.00025",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Perfect for gaming - fastest and cheapest",
            ("400ms finality - real-time viable",
             "3,000+ TPS capacity",
             "Cheapest in-game transactions",
             "Growing gaming ecosystem",
             "Star Atlas, Aurory and more"),
            ("Need to handle network congestion",
             "Different development paradigm"),
            "In-game action: $0.00025",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Ideal for social - fast, cheap micro-tx",
            ("Perfect for likes, tips, reactions",
             "Sub-second confirmation",
             "Negligible costs per action"),
            ("Less social protocol infrastructure",
             "Building from scratch more likely"),
            "Social action: $0.00025",
        ),
        UseCase.OTHER: UseCaseDetails(
            "High performance, low cost",
            ("Best raw performance",
             "Lowest fees for high volume",
             "Active developer community"),
            ("Different from EVM ecosystem",
             "Learning curve for Rust"),
            "$0.00025 per transaction",
        ),
    },
    SupportedChain.BASE: {
        UseCase.TOKENS: UseCaseDetails(
            "ERC-20 compatible with Coinbase integration",
            ("Full ERC-20 compatibility",
             "Much lower fees than Ethereum mainnet",
             "Easy Coinbase wallet onboarding",
             "Ethereum security via L2"),
            ("Newer chain, smaller ecosystem",
             "Less liquidity than mainnet"),
            "Token creation: $1-5 | Transfer: $0.01-0.05",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Affordable NFTs with Coinbase reach",
            ("Low minting costs ($0.10-0.50)",
             "Coinbase wallet integration",
             "Access to Coinbase user base",
             "ERC-721 compatible"),
            ("Smaller marketplace ecosystem",
             "Less established than Ethereum/Solana"),
            "Mint: $0.10-0.50 | Transfer: $0.01",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Best for payments - Coinbase + fiat on-ramp",
            ("Direct Coinbase integration",
             "Easy fiat on/off ramps",
             "Low fees ($0.01-0.05)",
             "Familiar Ethereum tooling",
             "USDC native support"),
            ("Centralization concerns (Coinbase)",
             "Newer ecosystem"),
            "Per payment: $0.01-0.05",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Growing DeFi with Ethereum compatibility",
            ("Uniswap, Aave deploying on Base",
             "Lower fees than mainnet",
             "Familiar EVM tooling"),
            ("Less liquidity than mainnet",
             "Fewer protocols (but growing fast)"),
            "Swap: $0.05-0.20",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Coinbase backing adds credibility",
            ("Coinbase is publicly traded, regulated",
             "Familiar Ethereum tooling",
             "Lower costs than mainnet"),
            ("Centralization around Coinbase",
             "Less battle-tested than mainnet",
             "Newer regulatory landscape"),
            "Contract deploy: $5-20",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Good balance for casual gaming",
            ("Low enough fees for gaming",
             "2-3 second finality",
             "Easy onboarding via Coinbase"),
            ("Not as fast as Solana",
             "Smaller gaming ecosystem"),
            "In-game action: $0.01-0.05",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Social with easy onboarding",
            ("Coinbase wallet = easy user onboarding",
             "Low fees for social actions",
             "Farcaster integration"),
            ("Still building social infrastructure",),
            "Social action: $0.01-0.05",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Ethereum L2 with Coinbase backing",
            ("Best of Ethereum with lower fees",
             "Strong institutional backing",
             "Easy mainstream onboarding"),
            ("Relatively new",
             "Dependent on Coinbase"),
            "$0.01-0.05 per transaction",
        ),
    },
}


def _evm_deps(chain_label: str, stripe_bonus: int, stripe_reason: str) -> Dict[str, RelatedDependency]:
    deps = {
        name: RelatedDependency(15, f"Already using {label} - {chain_label}")
        for name, label in (
            ("ethers", "ethers.js"), ("web3", "web3"), ("wagmi", "wagmi"),
            ("viem", "viem"), ("eth-account", "eth-account"),
        )
    }
    deps["@stripe/stripe-js"] = RelatedDependency(stripe_bonus, stripe_reason)
    deps["stripe"] = RelatedDependency(stripe_bonus, stripe_reason)
    return deps


_BASE_DEPS = _evm_deps(
    "works seamlessly with Base", 10, "Stripe + Base = great payment experience with fiat on-ramp"
)
_BASE_DEPS["@stripe/react-stripe-js"] = RelatedDependency(
    10, "Stripe + Base = seamless payments with Coinbase integration"
)

SDK_SUPPORT: Dict[SupportedChain, SdkSupport] = {
    SupportedChain.ETHEREUM: SdkSupport(
        frameworks={"react": 10, "next": 10, "vue": 8, "node": 10, "express": 10,
                    "python": 8, "fastapi": 8, "django": 8, "flask": 8},
        languages={"typescript": 10, "javascript": 10, "python": 8},
        related_deps=_evm_deps(
            "perfect for Ethereum/Base", 5, "Stripe integration pairs well with Base for fiat on-ramp"
        ),
    ),
    SupportedChain.BASE: SdkSupport(
        frameworks={"react": 10, "next": 10, "vue": 8, "node": 10, "express": 10,
                    "python": 8, "fastapi": 8, "django": 8, "flask": 8},
        languages={"typescript": 10, "javascript": 10, "python": 8},
        related_deps=_BASE_DEPS,
    ),
    SupportedChain.SOLANA: SdkSupport(
        frameworks={"react": 8, "next": 8, "vue": 5, "node": 8, "express": 8,
                    "python": 6, "fastapi": 6, "django": 6, "flask": 6},
        languages={"typescript": 8, "javascript": 8, "python": 5, "rust": 10},
        related_deps={
            "@solana/web3.js": RelatedDependency(20, "Already using Solana SDK - perfect match!"),
            "@solana/wallet-adapter-react": RelatedDependency(20, "Already using Solana wallet adapter"),
            "@metaplex-foundation/js": RelatedDependency(15, "Already using Metaplex - great for NFTs"),
            "solana": RelatedDependency(20, "Already using solana-py - perfect match!"),
            "solders": RelatedDependency(20, "Already using solders - perfect match!"),
        },
    ),
    SupportedChain.HEDERA: SdkSupport(
        frameworks={"react": 6, "next": 6, "vue": 4, "node": 8, "express": 8,
                    "python": 5, "fastapi": 5, "django": 5, "flask": 5, "java": 10},
        languages={"typescript": 7, "javascript": 7, "python": 5, "java": 10},
        related_deps={
            "@hashgraph/sdk": RelatedDependency(20, "Already using Hedera SDK - perfect match!"),
            "hiero-sdk-python": RelatedDependency(20, "Already using the Hedera Python SDK - perfect match!"),
            "hashconnect": RelatedDependency(15, "Already using HashConnect - great for Hedera"),
        },
    ),
}

FIT_LABELS = {
    FitLabel.EXCELLENT: "Excellent fit",
    FitLabel.GOOD: "Good fit",
    FitLabel.POSSIBLE: "Possible",
    FitLabel.NOT_RECOMMENDED: "Not recommended",
}


def score_to_fit(score: int) -> FitLabel:
    if score >= 90:
        return FitLabel.EXCELLENT
    if score >= 75:
        return FitLabel.GOOD
    if score >= 60:
        return FitLabel.POSSIBLE
    return FitLabel.NOT_RECOMMENDED


class ChainRankingEngine:
    """Scores chains per use case; holds only its static tables"""

    def __init__(self,
                 scores: Optional[Dict[SupportedChain, Dict[UseCase, int]]] = None,
                 details: Optional[Dict[SupportedChain, Dict[UseCase, UseCaseDetails]]] = None,
                 sdk_support: Optional[Dict[SupportedChain, SdkSupport]] = None):
        self._scores = scores or CHAIN_USE_CASE_SCORES
        self._details = details or CHAIN_USE_CASE_DETAILS
        self._sdk_support = sdk_support or SDK_SUPPORT

    def rank_chains_for_use_case(self, use_case: Union[UseCase, str],
                                 context: Optional[ProjectContext] = None) -> List[ChainRanking]:
        """Rank all chains for a use case, best first.

        Ties are broken by chain id so identical inputs always give identical
        output.
        """
        use_case = UseCase(use_case)
        rankings = []
        for chain in RANKED_CHAINS:
            details = self._details[chain][use_case]
            bonus, context_reasons = (
                self.calculate_context_bonus(chain, context) if context else (0, [])
            )
            score = max(0, min(100, self._scores[chain][use_case] + bonus))
            rankings.append(ChainRanking(
                chain=chain,
                rank=0,
                score=score,
                fit=score_to_fit(score),
                headline=details.headline,
                reasons=list(details.reasons),
                considerations=list(details.considerations),
                estimated_cost=details.cost_estimate,
                context_bonus=bonus,
                context_reasons=context_reasons,
            ))

        rankings.sort(key=lambda ranking: (-ranking.score, ranking.chain.value))
        for index, ranking in enumerate(rankings, start=1):
            ranking.rank = index
        return rankings

    def calculate_context_bonus(self, chain: SupportedChain,
                                context: ProjectContext) -> Tuple[int, List[str]]:
        """Bonus or penalty from project signals, with a reason per adjustment"""
        support = self._sdk_support[chain]
        bonus = 0
        reasons: List[str] = []

        if context.framework:
            score = support.frameworks.get(context.framework.lower(), UNKNOWN_SUPPORT_SCORE)
            if score >= 10:
                bonus += 5
                reasons.append(f"Excellent {context.framework} SDK support")
            elif score >= 8:
                bonus += 3
                reasons.append(f"Good {context.framework} SDK available")
            elif score <= 4:
                bonus -= 5
                reasons.append(f"Limited {context.framework} SDK support")

        if context.language:
            score = support.languages.get(context.language.lower(), UNKNOWN_SUPPORT_SCORE)
            if score >= 10:
                bonus += 3
                reasons.append(f"Full {context.language} type definitions")
            elif score <= 4:
                bonus -= 3
                reasons.append(f"Limited {context.language} tooling")

        # Dependencies are the strongest signal
        for dependency in dict.fromkeys(dep.lower() for dep in context.dependencies or []):
            related = support.related_deps.get(dependency)
            if related:
                bonus += related.bonus
                reasons.append(related.reason)

        return min(bonus, MAX_CONTEXT_BONUS), reasons

    def get_best_chain_for_use_case(self, use_case: Union[UseCase, str],
                                    context: Optional[ProjectContext] = None) -> ChainRanking:
        return self.rank_chains_for_use_case(use_case, context)[0]

    @staticmethod
    def get_fit_label(fit: FitLabel) -> str:
        return FIT_LABELS[fit]
