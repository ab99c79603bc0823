"""Draft assembly: one selected topic in, one hidden article draft out."""

from typing import Optional

from blogengine.core.logging import get_logger
from blogengine.mediaer.unsplash import ImageResult, UnsplashImageSearch
from blogengine.publisher.gateway import PersistenceGateway
from blogengine.publisher.linker import RelatedContent, RelatedContentFinder
from blogengine.rewriter.generator import ContentGenerator, GeneratedArticle
from blogengine.rewriter.models import (
    ArticleDraft,
    DocumentReference,
    FeaturedImage,
    ImageAssetRef,
    ImageCredit,
    TrendProvenance,
)
from blogengine.trender.models import SelectedTopic

logger = get_logger(__name__)


class DraftAssembler:
    """
    Builds an ArticleDraft from the generator, image search and linker.

    Generation errors propagate so the caller can skip the topic. A missing
    image or empty related content only leaves those fields unset. Drafts
    are always created hidden.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        gateway: PersistenceGateway,
        image_search: Optional[UnsplashImageSearch] = None,
        linker: Optional[RelatedContentFinder] = None,
    ):
        self.generator = generator
        self.gateway = gateway
        self.image_search = image_search
        self.linker = linker

    async def _featured_image(self, topic: SelectedTopic, article: GeneratedArticle):
        """Search and upload a photo; returns (image field, photo) or (None, None)."""
        if self.image_search is None:
            return None, None

        photo: Optional[ImageResult] = await self.image_search.search(topic.topic, article.category)
        if photo is None:
            logger.info(f"No image for '{article.title}', continuing without one")
            return None, None

        asset_id = await self.gateway.upload_image_from_url(photo.url, article.slug)
        if not asset_id:
            logger.warning(f"Image upload failed for '{article.title}', continuing without one")
            return None, None

        await self.image_search.track_download(photo.download_location)
        return FeaturedImage(asset=ImageAssetRef(ref=asset_id), alt=photo.alt), photo

    async def _related(self, article: GeneratedArticle) -> RelatedContent:
        if self.linker is None:
            return RelatedContent()
        return await self.linker.find(article.title, article.category)

    async def assemble(self, topic: SelectedTopic) -> ArticleDraft:
        """
        Assemble the draft for one topic.

        Raises:
            GenerationFailure: If the article itself could not be generated
        """
        article = await self.generator.generate(topic)
        featured_image, photo = await self._featured_image(topic, article)
        related = await self._related(article)
        geo = article.geo.to_patch()

        draft = ArticleDraft(
            title=article.title,
            slug=article.slug,
            category=article.category,
            excerpt=article.excerpt,
            introduction=article.introduction,
            main_content=article.content,
            quick_answer=geo.quick_answer,
            key_takeaways=geo.key_takeaways or [],
            expert_tips=geo.expert_tips or [],
            faq_section=geo.faq_section or [],
            kyndalls_take=geo.kyndalls_take,
            seo_title=article.seo_title or article.title,
            seo_description=article.seo_description or article.excerpt,
            keywords=article.keywords,
            featured_image=featured_image,
            image_credit=ImageCredit(
                name=photo.photographer_name,
                username=photo.photographer_username,
                photographer_url=photo.photographer_url,
                unsplash_url=photo.unsplash_url,
            ) if photo else None,
            image_attribution=photo.attribution_html if photo else None,
            related_blog_posts=[DocumentReference(ref=doc.id) for doc in related.blog_posts],
            related_articles=[DocumentReference(ref=doc.id) for doc in related.articles],
            trend_source=TrendProvenance(
                platform=topic.platform.value if topic.platform else 'unknown',
                trending_topic=topic.topic,
                trending_score=topic.trending_score,
            ),
            show_on_site=False,
        )

        logger.info(
            f"Assembled '{draft.title}': {len(draft.faq_section)} FAQs, "
            f"{len(draft.key_takeaways)} takeaways, {len(draft.expert_tips)} tips, "
            f"image={'yes' if featured_image else 'no'}"
        )
        return draft
